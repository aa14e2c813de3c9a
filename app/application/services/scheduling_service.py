from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Union
from datetime import date
import logging
import re

from ...exceptions import ErrorCode, SchedulingError, not_found
from ...utils import format_rut, validate_rut
from ..ports.appointments_repo import (
    AppointmentDto,
    AppointmentsRepository,
    AppointmentStatus,
    NewAppointment,
    PaymentStatus,
    SlotAlreadyBookedError,
)
from ..ports.blocks_repo import ManualBlockRepository
from ..ports.caller import CallerContext
from ..ports.catalog_repo import CatalogRepository, TreatmentDto
from ..ports.notifier import (
    AppointmentCancelled,
    AppointmentCreated,
    AppointmentEvent,
    AppointmentRescheduled,
    Notifier,
)
from ..ports.patients_repo import PatientData, PatientDto, PatientRepository
from ..ports.schedule_repo import ScheduleRepository
from ..ports.storage import Repositories
from .availability_service import AvailabilityCalculator, DEFAULT_SLOT_MINUTES
from .booking_policy import BookingPolicy
from .conflict_validator import ConflictValidator
from .time_utils import TimeOfDay, normalize_time, parse_date

logger = logging.getLogger(__name__)

_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


@dataclass
class BookingResult:
    appointment: AppointmentDto
    patient: Optional[PatientDto]
    treatment: Optional[TreatmentDto] = None


def _slot_taken(exc: SlotAlreadyBookedError) -> SchedulingError:
    return SchedulingError(
        ErrorCode.SLOT_TAKEN,
        f"The slot {exc.appointment_date.isoformat()} at {exc.start_time[:5]} was just booked by someone else",
        {"date": exc.appointment_date.isoformat(), "time": exc.start_time[:5]},
    )


def _require_date(raw, field_name: str = "date") -> date:
    day = parse_date(raw)
    if day is None:
        raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid date format. Use YYYY-MM-DD", {field_name: raw})
    return day


@dataclass
class SchedulingService:
    """Create, reschedule, cancel and change the status of appointments.

    The caller is already authorized; ``CallerContext`` only decides the
    defaults that differ between public and admin bookings.
    """
    appointments: AppointmentsRepository
    blocks: ManualBlockRepository
    schedules: ScheduleRepository
    patients: PatientRepository
    catalog: CatalogRepository
    notifier: Optional[Notifier] = None
    policy: BookingPolicy = field(default_factory=BookingPolicy)
    default_session_minutes: int = 60
    slot_minutes: int = DEFAULT_SLOT_MINUTES

    @classmethod
    def from_repositories(cls, repos: Repositories, **kwargs) -> "SchedulingService":
        return cls(
            appointments=repos.appointments,
            blocks=repos.blocks,
            schedules=repos.schedules,
            patients=repos.patients,
            catalog=repos.catalog,
            **kwargs,
        )

    @property
    def validator(self) -> ConflictValidator:
        return ConflictValidator(self.appointments, self.blocks, self.patients)

    @property
    def calculator(self) -> AvailabilityCalculator:
        return AvailabilityCalculator(self.schedules, self.appointments, self.blocks, self.slot_minutes)

    # ------------------------------------------------------------------
    # create
    # ------------------------------------------------------------------
    def create_appointment(
        self,
        caller: CallerContext,
        appointment_date: str,
        start_time: str,
        patient: Optional[PatientData],
        treatment_id: Optional[int] = None,
        end_time: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> BookingResult:
        missing = []
        if not appointment_date:
            missing.append("date")
        if not start_time:
            missing.append("time")
        if patient is None or not patient.full_name:
            missing.append("patient.full_name")
        if patient is None or not patient.email:
            missing.append("patient.email")
        if patient is None or not patient.rut:
            missing.append("patient.rut")
        if treatment_id is None and not caller.is_admin:
            missing.append("treatment_id")
        if missing:
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, f"Missing required fields: {', '.join(missing)}", {"missing": missing})

        if not _EMAIL.match(patient.email):
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid email address", {"email": patient.email})
        if not validate_rut(patient.rut):
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid national ID (RUT)", {"rut": patient.rut})

        day = _require_date(appointment_date)

        treatment = None
        if treatment_id is not None:
            treatment = self.catalog.get_treatment(treatment_id)
            if treatment is None or not treatment.is_active:
                raise SchedulingError(ErrorCode.NOT_FOUND, "Treatment not found or inactive", {"treatment_id": treatment_id})

        start = normalize_time(start_time)
        if start is None:
            raise SchedulingError(ErrorCode.INVALID_TIME_FORMAT, "Times must be given as HH:MM or HH:MM:SS", {"time": start_time})

        minimum = None
        if end_time is None:
            length = (treatment.duration_minutes if treatment and treatment.duration_minutes else self.default_session_minutes)
            end_minutes = start.minutes + length
            if end_minutes >= 24 * 60:
                raise SchedulingError(ErrorCode.INVALID_RANGE, f"A {length} minute session cannot start at {start.short()}")
            end = TimeOfDay.from_minutes(end_minutes)
        else:
            end = end_time
            if treatment and treatment.duration_minutes:
                minimum = treatment.duration_minutes

        if not caller.is_admin:
            self.policy.check_public_booking(day, start)
            end_of = normalize_time(end)
            windows = self.calculator.resolve_windows(day)
            if end_of is None or not any(w.contains(start.minutes, end_of.minutes) for w in windows):
                raise SchedulingError(
                    ErrorCode.OUTSIDE_SCHEDULE,
                    f"{start.short()} on {day.isoformat()} is outside the published opening hours",
                    {"date": day.isoformat(), "time": start.short()},
                )

        outcome = self.validator.validate(day, start, end, minimum_duration_minutes=minimum).raise_for_rejection()

        resolved_patient = self._resolve_patient(patient, caller)
        status = AppointmentStatus.CONFIRMED if caller.is_admin else AppointmentStatus.PENDING

        try:
            appointment = self.appointments.create(NewAppointment(
                appointment_date=day,
                start_time=outcome.start.isoformat(),
                end_time=outcome.end.isoformat(),
                duration_minutes=outcome.duration_minutes,
                status=status,
                patient_rut=resolved_patient.rut,
                treatment_id=treatment.id if treatment else None,
                amount=treatment.price if treatment else None,
                notes=notes or None,
            ))
        except SlotAlreadyBookedError as exc:
            logger.warning(f"Store rejected booking {exc.appointment_date} {exc.start_time}: slot already taken")
            raise _slot_taken(exc)

        logger.info(f"Appointment {appointment.id} created for {appointment.appointment_date} {appointment.start_time} ({status})")
        self._notify(AppointmentCreated(appointment=appointment, patient=resolved_patient, treatment=treatment))
        return BookingResult(appointment=appointment, patient=resolved_patient, treatment=treatment)

    def _resolve_patient(self, data: PatientData, caller: CallerContext) -> PatientDto:
        data = replace(data, rut=format_rut(data.rut))
        if caller.user_id and not data.user_id:
            data.user_id = caller.user_id
        existing = self.patients.get_by_rut(data.rut)
        if existing:
            logger.info(f"Updating existing patient {data.rut}")
            return self.patients.update(data.rut, data) or existing
        logger.info(f"Creating patient {data.rut}")
        return self.patients.create(data)

    # ------------------------------------------------------------------
    # reschedule / cancel / status
    # ------------------------------------------------------------------
    def reschedule(self, appointment_id: int, new_date: str, new_start: str, new_end: str) -> AppointmentDto:
        existing = self._get(appointment_id)
        if existing.status == AppointmentStatus.CANCELLED:
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "A cancelled appointment cannot be rescheduled", {"appointment_id": appointment_id})
        if not new_date or not new_start or not new_end:
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "newDate, newStartTime and newEndTime are required")
        day = _require_date(new_date, "newDate")

        treatment = self.catalog.get_treatment(existing.treatment_id) if existing.treatment_id else None
        required = existing.duration_minutes
        if treatment and treatment.duration_minutes:
            required = treatment.duration_minutes

        outcome = self.validator.validate(
            day,
            new_start,
            new_end,
            exclude_appointment_id=existing.id,
            minimum_duration_minutes=required,
        ).raise_for_rejection()

        previous = existing.snapshot()
        try:
            updated = self.appointments.update_schedule(
                existing.id,
                day,
                outcome.start.isoformat(),
                outcome.end.isoformat(),
                outcome.duration_minutes,
            )
        except SlotAlreadyBookedError as exc:
            raise _slot_taken(exc)
        if updated is None:
            raise not_found("Appointment")

        logger.info(f"Appointment {updated.id} moved from {previous.appointment_date} {previous.start_time} to {updated.appointment_date} {updated.start_time}")
        self._notify(lambda: AppointmentRescheduled(
            previous=previous,
            current=updated,
            patient=self.patients.get_by_rut(updated.patient_rut),
            treatment=treatment,
        ))
        return updated

    def cancel(self, appointment_id: int, reason: Optional[str] = None) -> AppointmentDto:
        existing = self._get(appointment_id)
        if existing.status == AppointmentStatus.CANCELLED:
            return existing
        updated = self.appointments.update_status(existing.id, AppointmentStatus.CANCELLED, cancellation_reason=reason)
        if updated is None:
            raise not_found("Appointment")
        logger.info(f"Appointment {updated.id} cancelled: {reason or 'no reason given'}")
        self._notify_cancelled(updated, reason)
        return updated

    def change_status(self, appointment_id: int, new_status: str) -> AppointmentDto:
        if new_status not in AppointmentStatus.ALL:
            raise SchedulingError(
                ErrorCode.VALIDATION_ERROR,
                f"Invalid status. Must be one of: {', '.join(AppointmentStatus.ALL)}",
                {"status": new_status},
            )
        existing = self._get(appointment_id)
        if existing.status == new_status:
            return existing

        if existing.status == AppointmentStatus.CANCELLED:
            # back in play: it must not collide with what was booked meanwhile
            self.validator.validate(
                existing.appointment_date,
                existing.start_time,
                existing.end_time,
                exclude_appointment_id=existing.id,
            ).raise_for_rejection()

        try:
            updated = self.appointments.update_status(existing.id, new_status)
        except SlotAlreadyBookedError as exc:
            raise _slot_taken(exc)
        if updated is None:
            raise not_found("Appointment")

        logger.info(f"Appointment {updated.id} status {existing.status} -> {new_status}")
        if new_status == AppointmentStatus.CANCELLED:
            self._notify_cancelled(updated, None)
        return updated

    # ------------------------------------------------------------------
    # admin helpers
    # ------------------------------------------------------------------
    def get_appointment(self, appointment_id: int) -> BookingResult:
        appointment = self._get(appointment_id)
        treatment = self.catalog.get_treatment(appointment.treatment_id) if appointment.treatment_id else None
        return BookingResult(
            appointment=appointment,
            patient=self.patients.get_by_rut(appointment.patient_rut),
            treatment=treatment,
        )

    def list_appointments(self, appointment_date: Optional[str] = None, status: Optional[str] = None) -> List[AppointmentDto]:
        day = _require_date(appointment_date) if appointment_date else None
        if status is not None and status not in AppointmentStatus.ALL:
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, f"Invalid status. Must be one of: {', '.join(AppointmentStatus.ALL)}")
        return self.appointments.list(appointment_date=day, status=status)

    def update_notes(self, appointment_id: int, notes: Optional[str]) -> AppointmentDto:
        self._get(appointment_id)
        updated = self.appointments.update_notes(appointment_id, notes or None)
        if updated is None:
            raise not_found("Appointment")
        return updated

    def update_payment(self, appointment_id: int, payment_status: str, payment_method: Optional[str] = None, transaction_id: Optional[str] = None) -> AppointmentDto:
        if payment_status not in PaymentStatus.ALL:
            raise SchedulingError(
                ErrorCode.VALIDATION_ERROR,
                f"Invalid payment status. Options: {', '.join(PaymentStatus.ALL)}",
                {"payment_status": payment_status},
            )
        existing = self._get(appointment_id)
        updated = self.appointments.update_payment(existing.id, payment_status, payment_method, transaction_id)
        if updated is None:
            raise not_found("Appointment")
        if payment_status == PaymentStatus.PAID and updated.status == AppointmentStatus.PENDING:
            logger.info(f"Appointment {updated.id} paid, confirming")
            updated = self.appointments.update_status(updated.id, AppointmentStatus.CONFIRMED) or updated
        return updated

    def find_patient(self, rut: str) -> PatientDto:
        if not validate_rut(rut):
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid national ID (RUT)", {"rut": rut})
        patient = self.patients.get_by_rut(format_rut(rut))
        if patient is None:
            raise not_found("Patient")
        return patient

    # ------------------------------------------------------------------
    def _get(self, appointment_id: int) -> AppointmentDto:
        appointment = self.appointments.get_by_id(appointment_id)
        if appointment is None:
            raise not_found("Appointment")
        return appointment

    def _notify_cancelled(self, appointment: AppointmentDto, reason: Optional[str]) -> None:
        self._notify(lambda: AppointmentCancelled(
            appointment=appointment,
            patient=self.patients.get_by_rut(appointment.patient_rut),
            reason=reason,
        ))

    def _notify(self, event: Union[AppointmentEvent, Callable[[], AppointmentEvent]]) -> None:
        """Hand an intent to the notifier; delivery problems never reach the caller."""
        if self.notifier is None:
            return
        try:
            if callable(event):
                event = event()
            self.notifier.publish(event)
        except Exception:
            logger.exception("Failed to publish appointment notification (not critical)")
