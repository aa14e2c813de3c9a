from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class TreatmentDto:
    id: int
    name: str
    kind: str
    price: Optional[int]
    duration_minutes: Optional[int]
    sessions: int = 1
    is_active: bool = True


class CatalogRepository(Protocol):
    def get_treatment(self, treatment_id: int) -> Optional[TreatmentDto]:
        ...
