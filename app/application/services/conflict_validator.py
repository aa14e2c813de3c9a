from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Optional
import logging

from ...exceptions import ErrorCode, SchedulingError
from ..ports.appointments_repo import AppointmentDto, AppointmentsRepository, AppointmentStatus
from ..ports.blocks_repo import ManualBlockRepository
from ..ports.patients_repo import PatientRepository
from .time_utils import TimeLike, TimeOfDay, normalize_time, overlaps

logger = logging.getLogger(__name__)


@dataclass
class ValidationOutcome:
    accepted: bool
    code: Optional[str] = None
    message: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)
    start: Optional[TimeOfDay] = None
    end: Optional[TimeOfDay] = None
    duration_minutes: Optional[int] = None

    def raise_for_rejection(self) -> "ValidationOutcome":
        if not self.accepted:
            raise SchedulingError(self.code, self.message, self.details)
        return self


def _reject(code: str, message: str, **details) -> ValidationOutcome:
    return ValidationOutcome(accepted=False, code=code, message=message, details=details)


class ConflictValidator:
    """Checks a proposed [start, end) on a date against bookings and blocks.

    Checks run in a fixed order and the first failure wins:
    range validity, minimum duration, exact-slot collision, range overlap,
    manual block overlap.
    """

    def __init__(self, appointments: AppointmentsRepository, blocks: ManualBlockRepository, patients: Optional[PatientRepository] = None):
        self.appointments = appointments
        self.blocks = blocks
        self.patients = patients

    def validate(self, day: date, start_raw: TimeLike, end_raw: TimeLike, exclude_appointment_id: Optional[int] = None, minimum_duration_minutes: Optional[int] = None) -> ValidationOutcome:
        start = normalize_time(start_raw)
        end = normalize_time(end_raw)
        if start is None or end is None:
            return _reject(
                ErrorCode.INVALID_TIME_FORMAT,
                "Times must be given as HH:MM or HH:MM:SS",
                start_time="OK" if start else "invalid format",
                end_time="OK" if end else "invalid format",
            )

        duration = end.minutes - start.minutes
        if duration <= 0:
            return _reject(
                ErrorCode.INVALID_RANGE,
                f"End time {end.short()} must be after start time {start.short()}",
                start_time=start.short(),
                end_time=end.short(),
            )

        if minimum_duration_minutes and duration < minimum_duration_minutes:
            return _reject(
                ErrorCode.DURATION_TOO_SHORT,
                f"This appointment requires {minimum_duration_minutes} minutes, but {start.short()} - {end.short()} only has {duration} minutes",
                required_minutes=minimum_duration_minutes,
                given_minutes=duration,
            )

        others = [
            a for a in self.appointments.list_for_date(day, statuses=AppointmentStatus.ACTIVE)
            if a.id != exclude_appointment_id
        ]

        for other in others:
            other_start = normalize_time(other.start_time)
            if other_start is not None and other_start.minutes == start.minutes:
                who = self._patient_label(other)
                return _reject(
                    ErrorCode.SLOT_TAKEN,
                    f"The slot {day.isoformat()} at {start.short()} is already booked by {who}",
                    appointment_id=other.id,
                    patient=who,
                )

        for other in others:
            other_start = normalize_time(other.start_time)
            other_end = normalize_time(other.end_time)
            if other_start is None or other_end is None:
                logger.warning(f"Appointment {other.id} has unparseable times {other.start_time}-{other.end_time}")
                continue
            if overlaps(start.minutes, end.minutes, other_start.minutes, other_end.minutes):
                who = self._patient_label(other)
                return _reject(
                    ErrorCode.RANGE_CONFLICT,
                    f"{start.short()} - {end.short()} overlaps an existing appointment of {who} from {other_start.short()} to {other_end.short()}",
                    appointment_id=other.id,
                    patient=who,
                    conflict_start=other_start.short(),
                    conflict_end=other_end.short(),
                )

        for block in self.blocks.list_for_date(day):
            block_start = normalize_time(block.start_time)
            block_end = normalize_time(block.end_time)
            if block_start is None or block_end is None:
                continue
            if overlaps(start.minutes, end.minutes, block_start.minutes, block_end.minutes):
                return _reject(
                    ErrorCode.BLOCKED,
                    f"{start.short()} - {end.short()} falls inside a blocked period ({block_start.short()} - {block_end.short()})",
                    block_id=block.id,
                    block_type=block.type,
                    block_start=block_start.short(),
                    block_end=block_end.short(),
                )

        return ValidationOutcome(accepted=True, start=start, end=end, duration_minutes=duration)

    def _patient_label(self, appointment: AppointmentDto) -> str:
        if self.patients is not None and appointment.patient_rut:
            patient = self.patients.get_by_rut(appointment.patient_rut)
            if patient and patient.full_name:
                return patient.full_name
        return appointment.patient_rut or "another patient"
