from typing import Optional

from sqlmodel import Session, select

from .....db.models import Patient
from .....utils import utc_now
from .....application.ports.patients_repo import PatientRepository, PatientData, PatientDto


class SqlPatientRepository(PatientRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, p: Patient) -> PatientDto:
        return PatientDto(
            id=p.id,
            rut=p.rut,
            full_name=p.full_name,
            email=p.email,
            phone=p.phone,
            created_at=p.created_at,
            updated_at=p.updated_at,
        )

    def _get(self, rut: str) -> Optional[Patient]:
        return self.session.exec(select(Patient).where(Patient.rut == rut)).first()

    def get_by_rut(self, rut: str) -> Optional[PatientDto]:
        p = self._get(rut)
        return self._to_dto(p) if p else None

    def create(self, data: PatientData) -> PatientDto:
        p = Patient(rut=data.rut, **data.mutable_fields())
        self.session.add(p)
        self.session.flush()
        self.session.refresh(p)
        return self._to_dto(p)

    def update(self, rut: str, data: PatientData) -> Optional[PatientDto]:
        p = self._get(rut)
        if not p:
            return None
        for key, value in data.mutable_fields().items():
            setattr(p, key, value)
        p.updated_at = utc_now()
        self.session.add(p)
        self.session.flush()
        self.session.refresh(p)
        return self._to_dto(p)
