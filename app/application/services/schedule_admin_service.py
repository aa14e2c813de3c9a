from dataclasses import dataclass
from typing import List, Optional, Tuple
from datetime import date
import logging

from ...exceptions import ErrorCode, SchedulingError, not_found
from ..ports.blocks_repo import ManualBlockDto, ManualBlockRepository
from ..ports.schedule_repo import (
    ScheduleExceptionDto,
    ScheduleRepository,
    WeeklyScheduleDto,
    WeeklyScheduleInput,
)
from .time_utils import TimeOfDay, normalize_time, overlaps, parse_date

logger = logging.getLogger(__name__)


def _range(start_raw: Optional[str], end_raw: Optional[str]) -> Tuple[TimeOfDay, TimeOfDay]:
    start = normalize_time(start_raw)
    end = normalize_time(end_raw)
    if start is None or end is None:
        raise SchedulingError(
            ErrorCode.INVALID_TIME_FORMAT,
            "Times must be given as HH:MM or HH:MM:SS",
            {"start_time": start_raw, "end_time": end_raw},
        )
    if end.minutes <= start.minutes:
        raise SchedulingError(
            ErrorCode.INVALID_RANGE,
            f"End time {end.short()} must be after start time {start.short()}",
        )
    return start, end


def _day(raw) -> date:
    day = parse_date(raw)
    if day is None:
        raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid date format. Use YYYY-MM-DD", {"date": raw})
    return day


@dataclass
class ScheduleAdminService:
    """Maintains weekly hours, per-date exceptions and manual blocks."""
    schedules: ScheduleRepository
    blocks: ManualBlockRepository

    # weekly -------------------------------------------------------------
    def list_weekly(self) -> List[WeeklyScheduleDto]:
        return self.schedules.list_weekly()

    def replace_weekly(self, entries: List[WeeklyScheduleInput]) -> List[WeeklyScheduleDto]:
        normalized = []
        by_day = {}
        for entry in entries:
            if entry.day_of_week not in range(7):
                raise SchedulingError(ErrorCode.VALIDATION_ERROR, "day_of_week must be between 0 (Sunday) and 6 (Saturday)", {"day_of_week": entry.day_of_week})
            start, end = _range(entry.start_time, entry.end_time)
            if entry.active:
                for other_start, other_end in by_day.get(entry.day_of_week, []):
                    if overlaps(start.minutes, end.minutes, other_start.minutes, other_end.minutes):
                        raise SchedulingError(
                            ErrorCode.VALIDATION_ERROR,
                            f"Windows {start.short()}-{end.short()} and {other_start.short()}-{other_end.short()} overlap on day {entry.day_of_week}",
                        )
                by_day.setdefault(entry.day_of_week, []).append((start, end))
            normalized.append(WeeklyScheduleInput(entry.day_of_week, start.isoformat(), end.isoformat(), entry.active))

        result = self.schedules.replace_weekly(normalized)
        logger.info(f"Weekly schedule replaced with {len(result)} windows")
        return result

    def set_weekly_active(self, schedule_id: int, active: bool) -> WeeklyScheduleDto:
        updated = self.schedules.set_weekly_active(schedule_id, active)
        if updated is None:
            raise not_found("Schedule")
        return updated

    # exceptions ---------------------------------------------------------
    def list_exceptions(self, start: Optional[str] = None, end: Optional[str] = None) -> List[ScheduleExceptionDto]:
        return self.schedules.list_exceptions(_day(start) if start else None, _day(end) if end else None)

    def upsert_exception(self, day_raw: str, is_available: bool, start_time: Optional[str] = None, end_time: Optional[str] = None, reason: Optional[str] = None) -> ScheduleExceptionDto:
        day = _day(day_raw)
        if is_available:
            if not start_time or not end_time:
                raise SchedulingError(ErrorCode.VALIDATION_ERROR, "An available exception needs start_time and end_time")
            start, end = _range(start_time, end_time)
            start_time, end_time = start.isoformat(), end.isoformat()
        else:
            start_time = end_time = None
        exception = self.schedules.upsert_exception(day, is_available, start_time, end_time, reason)
        logger.info(f"Schedule exception for {day}: {'open ' + start_time + '-' + end_time if is_available else 'closed'}")
        return exception

    def delete_exception(self, day_raw: str) -> None:
        day = _day(day_raw)
        if not self.schedules.delete_exception(day):
            raise not_found("Schedule exception")

    # manual blocks ------------------------------------------------------
    def list_blocks(self, day_raw: Optional[str] = None) -> List[ManualBlockDto]:
        if day_raw:
            return self.blocks.list_for_date(_day(day_raw))
        return self.blocks.list_all()

    def create_block(self, day_raw: str, start_time: str, end_time: str, type: str = "manual", description: Optional[str] = None) -> ManualBlockDto:
        day = _day(day_raw)
        start, end = _range(start_time, end_time)
        self._ensure_no_overlap(day, start, end)
        block = self.blocks.create(day, start.isoformat(), end.isoformat(), type or "manual", description)
        logger.info(f"Manual block {block.id} created on {day} {start.short()}-{end.short()}")
        return block

    def update_block(self, block_id: int, day_raw: str, start_time: str, end_time: str, type: str = "manual", description: Optional[str] = None) -> ManualBlockDto:
        if self.blocks.get(block_id) is None:
            raise not_found("Manual block")
        day = _day(day_raw)
        start, end = _range(start_time, end_time)
        self._ensure_no_overlap(day, start, end, exclude_id=block_id)
        updated = self.blocks.update(block_id, day, start.isoformat(), end.isoformat(), type or "manual", description)
        if updated is None:
            raise not_found("Manual block")
        return updated

    def delete_block(self, block_id: int) -> None:
        if not self.blocks.delete(block_id):
            raise not_found("Manual block")

    def _ensure_no_overlap(self, day: date, start: TimeOfDay, end: TimeOfDay, exclude_id: Optional[int] = None) -> None:
        for block in self.blocks.list_for_date(day):
            if block.id == exclude_id:
                continue
            other_start = normalize_time(block.start_time)
            other_end = normalize_time(block.end_time)
            if other_start is None or other_end is None:
                continue
            if overlaps(start.minutes, end.minutes, other_start.minutes, other_end.minutes):
                raise SchedulingError(
                    ErrorCode.BLOCK_OVERLAP,
                    f"The block overlaps an existing block ({other_start.short()} - {other_end.short()}) on {day.isoformat()}",
                    {"block_id": block.id},
                )
