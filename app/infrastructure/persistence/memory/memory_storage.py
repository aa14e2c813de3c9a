import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional

from ....application.ports.appointments_repo import (
    AppointmentDto,
    AppointmentsRepository,
    AppointmentStatus,
    NewAppointment,
    PaymentStatus,
    SlotAlreadyBookedError,
)
from ....application.ports.blocks_repo import ManualBlockDto, ManualBlockRepository
from ....application.ports.catalog_repo import CatalogRepository, TreatmentDto
from ....application.ports.patients_repo import PatientData, PatientDto, PatientRepository
from ....application.ports.schedule_repo import (
    ScheduleExceptionDto,
    ScheduleRepository,
    WeeklyScheduleDto,
    WeeklyScheduleInput,
)
from ....application.ports.storage import Repositories
from ....utils import utc_now


class _Sequence:
    def __init__(self) -> None:
        self._next = 1

    def __call__(self) -> int:
        value = self._next
        self._next += 1
        return value


class InMemoryScheduleRepository(ScheduleRepository):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._weekly: Dict[int, WeeklyScheduleDto] = {}
        self._exceptions: Dict[date, ScheduleExceptionDto] = {}
        self._weekly_ids = _Sequence()
        self._exception_ids = _Sequence()

    def list_weekly(self, day_of_week: Optional[int] = None, active_only: bool = False) -> List[WeeklyScheduleDto]:
        with self._lock:
            rows = [
                replace(w) for w in self._weekly.values()
                if (day_of_week is None or w.day_of_week == day_of_week) and (w.active or not active_only)
            ]
        return sorted(rows, key=lambda w: (w.day_of_week, w.start_time))

    def replace_weekly(self, entries: List[WeeklyScheduleInput]) -> List[WeeklyScheduleDto]:
        with self._lock:
            self._weekly.clear()
            for entry in entries:
                row = WeeklyScheduleDto(self._weekly_ids(), entry.day_of_week, entry.start_time, entry.end_time, entry.active)
                self._weekly[row.id] = row
        return self.list_weekly()

    def set_weekly_active(self, schedule_id: int, active: bool) -> Optional[WeeklyScheduleDto]:
        with self._lock:
            row = self._weekly.get(schedule_id)
            if not row:
                return None
            row.active = active
            return replace(row)

    def get_exception(self, day: date) -> Optional[ScheduleExceptionDto]:
        with self._lock:
            row = self._exceptions.get(day)
            return replace(row) if row else None

    def list_exceptions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[ScheduleExceptionDto]:
        with self._lock:
            rows = [
                replace(e) for e in self._exceptions.values()
                if (start is None or e.date >= start) and (end is None or e.date <= end)
            ]
        return sorted(rows, key=lambda e: e.date)

    def upsert_exception(self, day: date, is_available: bool, start_time: Optional[str], end_time: Optional[str], reason: Optional[str]) -> ScheduleExceptionDto:
        with self._lock:
            existing = self._exceptions.get(day)
            row = ScheduleExceptionDto(
                id=existing.id if existing else self._exception_ids(),
                date=day,
                is_available=is_available,
                start_time=start_time,
                end_time=end_time,
                reason=reason,
            )
            self._exceptions[day] = row
            return replace(row)

    def delete_exception(self, day: date) -> bool:
        with self._lock:
            return self._exceptions.pop(day, None) is not None


class InMemoryManualBlockRepository(ManualBlockRepository):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._blocks: Dict[int, ManualBlockDto] = {}
        self._ids = _Sequence()

    def list_for_date(self, day: date) -> List[ManualBlockDto]:
        with self._lock:
            rows = [replace(b) for b in self._blocks.values() if b.date == day]
        return sorted(rows, key=lambda b: b.start_time)

    def list_all(self) -> List[ManualBlockDto]:
        with self._lock:
            rows = [replace(b) for b in self._blocks.values()]
        return sorted(rows, key=lambda b: (b.date, b.start_time))

    def get(self, block_id: int) -> Optional[ManualBlockDto]:
        with self._lock:
            row = self._blocks.get(block_id)
            return replace(row) if row else None

    def create(self, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> ManualBlockDto:
        with self._lock:
            row = ManualBlockDto(self._ids(), day, start_time, end_time, type, description)
            self._blocks[row.id] = row
            return replace(row)

    def update(self, block_id: int, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> Optional[ManualBlockDto]:
        with self._lock:
            if block_id not in self._blocks:
                return None
            row = ManualBlockDto(block_id, day, start_time, end_time, type, description)
            self._blocks[block_id] = row
            return replace(row)

    def delete(self, block_id: int) -> bool:
        with self._lock:
            return self._blocks.pop(block_id, None) is not None


class InMemoryAppointmentsRepository(AppointmentsRepository):
    """Enforces the same active (date, start) uniqueness as the SQL index."""

    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._rows: Dict[int, AppointmentDto] = {}
        self._ids = _Sequence()

    def _ensure_slot_free(self, appointment_date: date, start_time: str, exclude_id: Optional[int] = None) -> None:
        for row in self._rows.values():
            if row.id == exclude_id or row.status == AppointmentStatus.CANCELLED:
                continue
            if row.appointment_date == appointment_date and row.start_time == start_time:
                raise SlotAlreadyBookedError(appointment_date, start_time)

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        with self._lock:
            row = self._rows.get(appointment_id)
            return replace(row) if row else None

    def list_for_date(self, appointment_date: date, statuses: Optional[Iterable[str]] = None) -> List[AppointmentDto]:
        wanted = set(statuses) if statuses is not None else None
        with self._lock:
            rows = [
                replace(r) for r in self._rows.values()
                if r.appointment_date == appointment_date and (wanted is None or r.status in wanted)
            ]
        return sorted(rows, key=lambda r: r.start_time)

    def list(self, appointment_date: Optional[date] = None, status: Optional[str] = None) -> List[AppointmentDto]:
        with self._lock:
            rows = [
                replace(r) for r in self._rows.values()
                if (appointment_date is None or r.appointment_date == appointment_date) and (status is None or r.status == status)
            ]
        return sorted(rows, key=lambda r: (r.appointment_date, r.start_time), reverse=True)

    def create(self, data: NewAppointment) -> AppointmentDto:
        with self._lock:
            if data.status != AppointmentStatus.CANCELLED:
                self._ensure_slot_free(data.appointment_date, data.start_time)
            now = utc_now()
            row = AppointmentDto(
                id=self._ids(),
                appointment_date=data.appointment_date,
                start_time=data.start_time,
                end_time=data.end_time,
                duration_minutes=data.duration_minutes,
                status=data.status,
                patient_rut=data.patient_rut,
                treatment_id=data.treatment_id,
                amount=data.amount,
                notes=data.notes,
                created_at=now,
                payment_status=PaymentStatus.PENDING,
                updated_at=now,
            )
            self._rows[row.id] = row
            return replace(row)

    def update_schedule(self, appointment_id: int, appointment_date: date, start_time: str, end_time: str, duration_minutes: int) -> Optional[AppointmentDto]:
        with self._lock:
            row = self._rows.get(appointment_id)
            if not row:
                return None
            if row.status != AppointmentStatus.CANCELLED:
                self._ensure_slot_free(appointment_date, start_time, exclude_id=appointment_id)
            row.appointment_date = appointment_date
            row.start_time = start_time
            row.end_time = end_time
            row.duration_minutes = duration_minutes
            row.updated_at = utc_now()
            return replace(row)

    def update_status(self, appointment_id: int, status: str, cancellation_reason: Optional[str] = None) -> Optional[AppointmentDto]:
        with self._lock:
            row = self._rows.get(appointment_id)
            if not row:
                return None
            if row.status == AppointmentStatus.CANCELLED and status != AppointmentStatus.CANCELLED:
                self._ensure_slot_free(row.appointment_date, row.start_time, exclude_id=appointment_id)
            row.status = status
            if cancellation_reason is not None:
                row.cancellation_reason = cancellation_reason
            row.updated_at = utc_now()
            return replace(row)

    def update_notes(self, appointment_id: int, notes: Optional[str]) -> Optional[AppointmentDto]:
        with self._lock:
            row = self._rows.get(appointment_id)
            if not row:
                return None
            row.notes = notes
            row.updated_at = utc_now()
            return replace(row)

    def update_payment(self, appointment_id: int, payment_status: str, payment_method: Optional[str], transaction_id: Optional[str]) -> Optional[AppointmentDto]:
        with self._lock:
            row = self._rows.get(appointment_id)
            if not row:
                return None
            row.payment_status = payment_status
            if payment_method:
                row.payment_method = payment_method
            if transaction_id:
                row.transaction_id = transaction_id
            row.updated_at = utc_now()
            return replace(row)


class InMemoryPatientRepository(PatientRepository):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._rows: Dict[str, PatientDto] = {}
        self._ids = _Sequence()

    def get_by_rut(self, rut: str) -> Optional[PatientDto]:
        with self._lock:
            row = self._rows.get(rut)
            return replace(row) if row else None

    def create(self, data: PatientData) -> PatientDto:
        with self._lock:
            now = utc_now()
            row = PatientDto(self._ids(), data.rut, data.full_name, data.email, data.phone, now, now)
            self._rows[data.rut] = row
            return replace(row)

    def update(self, rut: str, data: PatientData) -> Optional[PatientDto]:
        with self._lock:
            row = self._rows.get(rut)
            if not row:
                return None
            fields = data.mutable_fields()
            row.full_name = fields.get("full_name", row.full_name)
            row.email = fields.get("email", row.email)
            row.phone = fields.get("phone", row.phone)
            row.updated_at = utc_now()
            return replace(row)


class InMemoryCatalogRepository(CatalogRepository):
    def __init__(self, lock: threading.RLock) -> None:
        self._lock = lock
        self._rows: Dict[int, TreatmentDto] = {}

    def add_treatment(self, treatment: TreatmentDto) -> TreatmentDto:
        with self._lock:
            self._rows[treatment.id] = treatment
            return replace(treatment)

    def get_treatment(self, treatment_id: int) -> Optional[TreatmentDto]:
        with self._lock:
            row = self._rows.get(treatment_id)
            return replace(row) if row else None


class MemoryStorage:
    """Process-local storage for development and tests.

    All repositories share one lock so a check-then-write inside a store is
    atomic with respect to other requests.
    """

    name = "memory"

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self.repositories = Repositories(
            schedules=InMemoryScheduleRepository(self._lock),
            blocks=InMemoryManualBlockRepository(self._lock),
            appointments=InMemoryAppointmentsRepository(self._lock),
            patients=InMemoryPatientRepository(self._lock),
            catalog=InMemoryCatalogRepository(self._lock),
        )

    def init(self) -> None:
        pass

    @contextmanager
    def unit(self) -> Iterator[Repositories]:
        yield self.repositories
