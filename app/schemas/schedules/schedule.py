# app/schemas/schedules/schedule.py
from pydantic import BaseModel, Field
from typing import List, Optional

from ...application.ports.blocks_repo import ManualBlockDto
from ...application.ports.schedule_repo import ScheduleExceptionDto, WeeklyScheduleDto


class WeeklyScheduleEntry(BaseModel):
    dayOfWeek: int = Field(ge=0, le=6)  # 0 = Sunday
    startTime: str
    endTime: str
    active: bool = True


class WeeklyScheduleReplace(BaseModel):
    schedules: List[WeeklyScheduleEntry]


class WeeklyScheduleToggle(BaseModel):
    active: bool


class WeeklyScheduleResponse(BaseModel):
    id: int
    dayOfWeek: int
    startTime: str
    endTime: str
    active: bool

    @classmethod
    def from_dto(cls, w: WeeklyScheduleDto) -> "WeeklyScheduleResponse":
        return cls(id=w.id, dayOfWeek=w.day_of_week, startTime=w.start_time, endTime=w.end_time, active=w.active)


class ScheduleExceptionUpsert(BaseModel):
    date: str
    isAvailable: bool
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    reason: Optional[str] = Field(default=None, max_length=255)


class ScheduleExceptionResponse(BaseModel):
    id: int
    date: str
    isAvailable: bool
    startTime: Optional[str] = None
    endTime: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_dto(cls, e: ScheduleExceptionDto) -> "ScheduleExceptionResponse":
        return cls(
            id=e.id,
            date=e.date.isoformat(),
            isAvailable=e.is_available,
            startTime=e.start_time,
            endTime=e.end_time,
            reason=e.reason,
        )


class ManualBlockIn(BaseModel):
    date: str
    startTime: str
    endTime: str
    type: str = "manual"
    description: Optional[str] = Field(default=None, max_length=255)


class ManualBlockResponse(BaseModel):
    id: int
    date: str
    startTime: str
    endTime: str
    type: str
    description: Optional[str] = None

    @classmethod
    def from_dto(cls, b: ManualBlockDto) -> "ManualBlockResponse":
        return cls(
            id=b.id,
            date=b.date.isoformat(),
            startTime=b.start_time,
            endTime=b.end_time,
            type=b.type,
            description=b.description,
        )
