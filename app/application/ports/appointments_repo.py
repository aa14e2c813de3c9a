from dataclasses import dataclass, replace
from typing import Iterable, List, Optional
from datetime import datetime, date


class AppointmentStatus:
    PENDING = "pending"
    CONFIRMED = "confirmed"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    ALL = (PENDING, CONFIRMED, COMPLETED, CANCELLED)
    ACTIVE = (PENDING, CONFIRMED, COMPLETED)
    # statuses that take a slot away from public availability
    HOLDING = (PENDING, CONFIRMED)


class PaymentStatus:
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"
    FAILED = "failed"

    ALL = (PENDING, PAID, REFUNDED, FAILED)


class SlotAlreadyBookedError(Exception):
    """Raised by a store when its (date, start) uniqueness rule rejects a write."""

    def __init__(self, appointment_date: date, start_time: str):
        super().__init__(f"slot {appointment_date} {start_time} is already booked")
        self.appointment_date = appointment_date
        self.start_time = start_time


@dataclass
class AppointmentDto:
    id: int
    appointment_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: str
    patient_rut: str
    treatment_id: Optional[int]
    amount: Optional[int]
    notes: Optional[str]
    created_at: datetime
    payment_status: str = PaymentStatus.PENDING
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    cancellation_reason: Optional[str] = None
    updated_at: Optional[datetime] = None

    def snapshot(self) -> "AppointmentDto":
        return replace(self)


@dataclass
class NewAppointment:
    appointment_date: date
    start_time: str
    end_time: str
    duration_minutes: int
    status: str
    patient_rut: str
    treatment_id: Optional[int] = None
    amount: Optional[int] = None
    notes: Optional[str] = None


class AppointmentsRepository:
    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        ...

    def list_for_date(self, appointment_date: date, statuses: Optional[Iterable[str]] = None) -> List[AppointmentDto]:
        ...

    def list(self, appointment_date: Optional[date] = None, status: Optional[str] = None) -> List[AppointmentDto]:
        ...

    def create(self, data: NewAppointment) -> AppointmentDto:
        ...

    def update_schedule(self, appointment_id: int, appointment_date: date, start_time: str, end_time: str, duration_minutes: int) -> Optional[AppointmentDto]:
        ...

    def update_status(self, appointment_id: int, status: str, cancellation_reason: Optional[str] = None) -> Optional[AppointmentDto]:
        ...

    def update_notes(self, appointment_id: int, notes: Optional[str]) -> Optional[AppointmentDto]:
        ...

    def update_payment(self, appointment_id: int, payment_status: str, payment_method: Optional[str], transaction_id: Optional[str]) -> Optional[AppointmentDto]:
        ...
