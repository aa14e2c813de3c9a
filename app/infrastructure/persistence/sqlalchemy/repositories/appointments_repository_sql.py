from typing import Iterable, List, Optional
from datetime import date
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .....db.models import Appointment
from .....utils import utc_now
from .....db.models.health.appointment import ACTIVE_SLOT_INDEX
from .....application.ports.appointments_repo import (
    AppointmentsRepository,
    AppointmentDto,
    NewAppointment,
    SlotAlreadyBookedError,
)

logger = logging.getLogger(__name__)


def _is_slot_violation(exc: IntegrityError) -> bool:
    message = str(getattr(exc, "orig", exc))
    return ACTIVE_SLOT_INDEX in message or "appointments.appointment_date, appointments.start_time" in message


class SqlAppointmentsRepository(AppointmentsRepository):
    def __init__(self, session: Session):
        self.session = session

    def _appt_to_dto(self, a: Appointment) -> AppointmentDto:
        return AppointmentDto(
            id=a.id,
            appointment_date=a.appointment_date,
            start_time=a.start_time,
            end_time=a.end_time,
            duration_minutes=a.duration_minutes,
            status=a.status,
            patient_rut=a.patient_rut,
            treatment_id=a.treatment_id,
            amount=a.amount,
            notes=a.notes,
            created_at=a.created_at,
            payment_status=a.payment_status,
            payment_method=a.payment_method,
            transaction_id=a.transaction_id,
            cancellation_reason=a.cancellation_reason,
            updated_at=a.updated_at,
        )

    def _get(self, appointment_id: int) -> Optional[Appointment]:
        return self.session.exec(select(Appointment).where(Appointment.id == appointment_id)).first()

    def _commit(self, appt: Appointment) -> AppointmentDto:
        appt.updated_at = utc_now()
        self.session.add(appt)
        try:
            self.session.commit()
        except IntegrityError as exc:
            self.session.rollback()
            if _is_slot_violation(exc):
                raise SlotAlreadyBookedError(appt.appointment_date, appt.start_time) from exc
            raise
        self.session.refresh(appt)
        return self._appt_to_dto(appt)

    def get_by_id(self, appointment_id: int) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        return self._appt_to_dto(a) if a else None

    def list_for_date(self, appointment_date: date, statuses: Optional[Iterable[str]] = None) -> List[AppointmentDto]:
        query = select(Appointment).where(Appointment.appointment_date == appointment_date)
        if statuses is not None:
            query = query.where(Appointment.status.in_(list(statuses)))
        rows = self.session.exec(query.order_by(Appointment.start_time)).all()
        return [self._appt_to_dto(r) for r in rows]

    def list(self, appointment_date: Optional[date] = None, status: Optional[str] = None) -> List[AppointmentDto]:
        query = select(Appointment)
        if appointment_date is not None:
            query = query.where(Appointment.appointment_date == appointment_date)
        if status is not None:
            query = query.where(Appointment.status == status)
        rows = self.session.exec(
            query.order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc())
        ).all()
        return [self._appt_to_dto(r) for r in rows]

    def create(self, data: NewAppointment) -> AppointmentDto:
        appt = Appointment(
            appointment_date=data.appointment_date,
            start_time=data.start_time,
            end_time=data.end_time,
            duration_minutes=data.duration_minutes,
            status=data.status,
            patient_rut=data.patient_rut,
            treatment_id=data.treatment_id,
            amount=data.amount,
            notes=data.notes,
        )
        return self._commit(appt)

    def update_schedule(self, appointment_id: int, appointment_date: date, start_time: str, end_time: str, duration_minutes: int) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        if not a:
            return None
        a.appointment_date = appointment_date
        a.start_time = start_time
        a.end_time = end_time
        a.duration_minutes = duration_minutes
        return self._commit(a)

    def update_status(self, appointment_id: int, status: str, cancellation_reason: Optional[str] = None) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        if not a:
            return None
        a.status = status
        if cancellation_reason is not None:
            a.cancellation_reason = cancellation_reason
        return self._commit(a)

    def update_notes(self, appointment_id: int, notes: Optional[str]) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        if not a:
            return None
        a.notes = notes
        return self._commit(a)

    def update_payment(self, appointment_id: int, payment_status: str, payment_method: Optional[str], transaction_id: Optional[str]) -> Optional[AppointmentDto]:
        a = self._get(appointment_id)
        if not a:
            return None
        a.payment_status = payment_status
        if payment_method:
            a.payment_method = payment_method
        if transaction_id:
            a.transaction_id = transaction_id
        return self._commit(a)
