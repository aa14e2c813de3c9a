from dataclasses import dataclass
from typing import List, Optional
from datetime import date


@dataclass
class ManualBlockDto:
    id: int
    date: date
    start_time: str
    end_time: str
    type: str
    description: Optional[str] = None


class ManualBlockRepository:
    def list_for_date(self, day: date) -> List[ManualBlockDto]:
        ...

    def list_all(self) -> List[ManualBlockDto]:
        ...

    def get(self, block_id: int) -> Optional[ManualBlockDto]:
        ...

    def create(self, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> ManualBlockDto:
        ...

    def update(self, block_id: int, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> Optional[ManualBlockDto]:
        ...

    def delete(self, block_id: int) -> bool:
        ...
