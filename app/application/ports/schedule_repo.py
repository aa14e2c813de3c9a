from dataclasses import dataclass
from typing import List, Optional
from datetime import date


@dataclass
class WeeklyScheduleDto:
    id: int
    day_of_week: int
    start_time: str
    end_time: str
    active: bool = True


@dataclass
class WeeklyScheduleInput:
    day_of_week: int
    start_time: str
    end_time: str
    active: bool = True


@dataclass
class ScheduleExceptionDto:
    id: int
    date: date
    is_available: bool
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    reason: Optional[str] = None


class ScheduleRepository:
    def list_weekly(self, day_of_week: Optional[int] = None, active_only: bool = False) -> List[WeeklyScheduleDto]:
        ...

    def replace_weekly(self, entries: List[WeeklyScheduleInput]) -> List[WeeklyScheduleDto]:
        ...

    def set_weekly_active(self, schedule_id: int, active: bool) -> Optional[WeeklyScheduleDto]:
        ...

    def get_exception(self, day: date) -> Optional[ScheduleExceptionDto]:
        ...

    def list_exceptions(self, start: Optional[date] = None, end: Optional[date] = None) -> List[ScheduleExceptionDto]:
        ...

    def upsert_exception(self, day: date, is_available: bool, start_time: Optional[str], end_time: Optional[str], reason: Optional[str]) -> ScheduleExceptionDto:
        ...

    def delete_exception(self, day: date) -> bool:
        ...
