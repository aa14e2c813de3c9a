# app/db/models/scheduling/schedule.py
from typing import Optional
from sqlmodel import SQLModel, Field
from ....utils import utc_now
from datetime import datetime, date


class WeeklySchedule(SQLModel, table=True):
    __tablename__ = "weekly_schedules"
    id: Optional[int] = Field(default=None, primary_key=True)
    day_of_week: int = Field(index=True)  # 0=Sunday .. 6=Saturday
    start_time: str = Field(max_length=8)
    end_time: str = Field(max_length=8)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now)


class ScheduleException(SQLModel, table=True):
    __tablename__ = "schedule_exceptions"
    id: Optional[int] = Field(default=None, primary_key=True)
    exception_date: date = Field(unique=True, index=True)
    is_available: bool = Field(default=False)
    start_time: Optional[str] = Field(default=None, max_length=8)
    end_time: Optional[str] = Field(default=None, max_length=8)
    reason: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utc_now)
