from typing import List, Optional
from datetime import date

from sqlmodel import Session, select

from .....db.models import ManualBlock
from .....application.ports.blocks_repo import ManualBlockRepository, ManualBlockDto


class SqlManualBlockRepository(ManualBlockRepository):
    def __init__(self, session: Session):
        self.session = session

    def _to_dto(self, b: ManualBlock) -> ManualBlockDto:
        return ManualBlockDto(
            id=b.id,
            date=b.block_date,
            start_time=b.start_time,
            end_time=b.end_time,
            type=b.type,
            description=b.description,
        )

    def _get(self, block_id: int) -> Optional[ManualBlock]:
        return self.session.exec(select(ManualBlock).where(ManualBlock.id == block_id)).first()

    def list_for_date(self, day: date) -> List[ManualBlockDto]:
        rows = self.session.exec(
            select(ManualBlock).where(ManualBlock.block_date == day).order_by(ManualBlock.start_time)
        ).all()
        return [self._to_dto(r) for r in rows]

    def list_all(self) -> List[ManualBlockDto]:
        rows = self.session.exec(select(ManualBlock).order_by(ManualBlock.block_date, ManualBlock.start_time)).all()
        return [self._to_dto(r) for r in rows]

    def get(self, block_id: int) -> Optional[ManualBlockDto]:
        b = self._get(block_id)
        return self._to_dto(b) if b else None

    def create(self, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> ManualBlockDto:
        b = ManualBlock(block_date=day, start_time=start_time, end_time=end_time, type=type, description=description)
        self.session.add(b)
        self.session.commit()
        self.session.refresh(b)
        return self._to_dto(b)

    def update(self, block_id: int, day: date, start_time: str, end_time: str, type: str, description: Optional[str]) -> Optional[ManualBlockDto]:
        b = self._get(block_id)
        if not b:
            return None
        b.block_date = day
        b.start_time = start_time
        b.end_time = end_time
        b.type = type
        b.description = description
        self.session.add(b)
        self.session.commit()
        self.session.refresh(b)
        return self._to_dto(b)

    def delete(self, block_id: int) -> bool:
        b = self._get(block_id)
        if not b:
            return False
        self.session.delete(b)
        self.session.commit()
        return True
