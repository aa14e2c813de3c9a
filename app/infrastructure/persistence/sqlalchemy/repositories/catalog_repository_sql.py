from typing import Optional

from sqlmodel import Session, select

from .....db.models import Treatment
from .....application.ports.catalog_repo import CatalogRepository, TreatmentDto


class SqlCatalogRepository(CatalogRepository):
    def __init__(self, session: Session):
        self.session = session

    def get_treatment(self, treatment_id: int) -> Optional[TreatmentDto]:
        t = self.session.exec(select(Treatment).where(Treatment.id == treatment_id)).first()
        if not t:
            return None
        return TreatmentDto(
            id=t.id,
            name=t.name,
            kind=t.kind,
            price=t.price,
            duration_minutes=t.duration_minutes,
            sessions=t.sessions or 1,
            is_active=bool(t.is_active),
        )
