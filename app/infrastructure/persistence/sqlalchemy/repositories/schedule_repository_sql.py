from typing import List, Optional
from datetime import date

from sqlmodel import Session, select

from .....db.models import WeeklySchedule, ScheduleException
from .....application.ports.schedule_repo import (
    ScheduleRepository,
    ScheduleExceptionDto,
    WeeklyScheduleDto,
    WeeklyScheduleInput,
)


class SqlScheduleRepository(ScheduleRepository):
    def __init__(self, session: Session):
        self.session = session

    def _weekly_to_dto(self, w: WeeklySchedule) -> WeeklyScheduleDto:
        return WeeklyScheduleDto(
            id=w.id,
            day_of_week=w.day_of_week,
            start_time=w.start_time,
            end_time=w.end_time,
            active=bool(w.is_active),
        )

    def _exception_to_dto(self, e: ScheduleException) -> ScheduleExceptionDto:
        return ScheduleExceptionDto(
            id=e.id,
            date=e.exception_date,
            is_available=bool(e.is_available),
            start_time=e.start_time,
            end_time=e.end_time,
            reason=e.reason,
        )

    def list_weekly(self, day_of_week: Optional[int] = None, active_only: bool = False) -> List[WeeklyScheduleDto]:
        query = select(WeeklySchedule)
        if day_of_week is not None:
            query = query.where(WeeklySchedule.day_of_week == day_of_week)
        if active_only:
            query = query.where(WeeklySchedule.is_active == True)  # noqa: E712
        rows = self.session.exec(query.order_by(WeeklySchedule.day_of_week, WeeklySchedule.start_time)).all()
        return [self._weekly_to_dto(r) for r in rows]

    def replace_weekly(self, entries: List[WeeklyScheduleInput]) -> List[WeeklyScheduleDto]:
        for row in self.session.exec(select(WeeklySchedule)).all():
            self.session.delete(row)
        for entry in entries:
            self.session.add(WeeklySchedule(
                day_of_week=entry.day_of_week,
                start_time=entry.start_time,
                end_time=entry.end_time,
                is_active=entry.active,
            ))
        self.session.commit()
        return self.list_weekly()

    def set_weekly_active(self, schedule_id: int, active: bool) -> Optional[WeeklyScheduleDto]:
        w = self.session.exec(select(WeeklySchedule).where(WeeklySchedule.id == schedule_id)).first()
        if not w:
            return None
        w.is_active = active
        self.session.add(w)
        self.session.commit()
        self.session.refresh(w)
        return self._weekly_to_dto(w)

    def _exception_row(self, day: date) -> Optional[ScheduleException]:
        return self.session.exec(select(ScheduleException).where(ScheduleException.exception_date == day)).first()

    def get_exception(self, day: date) -> Optional[ScheduleExceptionDto]:
        e = self._exception_row(day)
        return self._exception_to_dto(e) if e else None

    def list_exceptions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[ScheduleExceptionDto]:
        query = select(ScheduleException)
        if start is not None:
            query = query.where(ScheduleException.exception_date >= start)
        if end is not None:
            query = query.where(ScheduleException.exception_date <= end)
        rows = self.session.exec(query.order_by(ScheduleException.exception_date)).all()
        return [self._exception_to_dto(r) for r in rows]

    def upsert_exception(self, day: date, is_available: bool, start_time: Optional[str], end_time: Optional[str], reason: Optional[str]) -> ScheduleExceptionDto:
        e = self._exception_row(day) or ScheduleException(exception_date=day)
        e.is_available = is_available
        e.start_time = start_time
        e.end_time = end_time
        e.reason = reason
        self.session.add(e)
        self.session.commit()
        self.session.refresh(e)
        return self._exception_to_dto(e)

    def delete_exception(self, day: date) -> bool:
        e = self._exception_row(day)
        if not e:
            return False
        self.session.delete(e)
        self.session.commit()
        return True
