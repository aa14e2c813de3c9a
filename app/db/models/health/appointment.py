# app/db/models/health/appointment.py
from typing import Optional
from sqlalchemy import Index, text
from sqlmodel import SQLModel, Field
from ....utils import utc_now
from datetime import datetime, date

ACTIVE_SLOT_INDEX = "uq_appointments_active_slot"


class Appointment(SQLModel, table=True):
    __tablename__ = "appointments"
    __table_args__ = (
        # one live booking per (date, start); cancelled rows free the slot
        Index(
            ACTIVE_SLOT_INDEX,
            "appointment_date",
            "start_time",
            unique=True,
            sqlite_where=text("status <> 'cancelled'"),
            postgresql_where=text("status <> 'cancelled'"),
        ),
    )
    id: Optional[int] = Field(default=None, primary_key=True)
    appointment_date: date = Field(index=True)
    start_time: str = Field(max_length=8)  # HH:MM:SS
    end_time: str = Field(max_length=8)
    duration_minutes: int
    status: str = Field(default="pending", max_length=20, index=True)
    patient_rut: str = Field(foreign_key="patients.rut", max_length=12, index=True)
    treatment_id: Optional[int] = Field(default=None, foreign_key="treatments.id")
    amount: Optional[int] = None
    notes: Optional[str] = None
    payment_status: str = Field(default="pending", max_length=20)
    payment_method: Optional[str] = Field(default=None, max_length=50)
    transaction_id: Optional[str] = Field(default=None, max_length=100)
    cancellation_reason: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
