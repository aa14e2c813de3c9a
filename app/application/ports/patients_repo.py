from dataclasses import dataclass, asdict
from typing import Optional, Protocol
from datetime import datetime


@dataclass
class PatientData:
    rut: str
    full_name: str
    email: str
    phone: Optional[str] = None
    birth_date: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    medical_notes: Optional[str] = None
    user_id: Optional[str] = None

    def mutable_fields(self) -> dict:
        """Fields copied onto an existing record; unset values never erase stored ones."""
        return {k: v for k, v in asdict(self).items() if k != "rut" and v is not None}


@dataclass
class PatientDto:
    id: int
    rut: str
    full_name: str
    email: str
    phone: Optional[str]
    created_at: datetime
    updated_at: datetime


class PatientRepository(Protocol):
    def get_by_rut(self, rut: str) -> Optional[PatientDto]:
        ...

    def create(self, data: PatientData) -> PatientDto:
        ...

    def update(self, rut: str, data: PatientData) -> Optional[PatientDto]:
        ...
