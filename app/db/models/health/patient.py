# app/db/models/health/patient.py
from typing import Optional
from sqlmodel import SQLModel, Field
from ....utils import utc_now
from datetime import datetime


class Patient(SQLModel, table=True):
    __tablename__ = "patients"
    id: Optional[int] = Field(default=None, primary_key=True)
    rut: str = Field(max_length=12, unique=True, index=True)
    full_name: str = Field(max_length=150)
    email: str = Field(max_length=150, index=True)
    phone: Optional[str] = Field(default=None, max_length=30)
    birth_date: Optional[str] = Field(default=None, max_length=10)
    address: Optional[str] = Field(default=None, max_length=255)
    city: Optional[str] = Field(default=None, max_length=100)
    region: Optional[str] = Field(default=None, max_length=100)
    emergency_contact_name: Optional[str] = Field(default=None, max_length=150)
    emergency_contact_phone: Optional[str] = Field(default=None, max_length=30)
    medical_notes: Optional[str] = None
    user_id: Optional[str] = Field(default=None, max_length=36)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
