from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import List, Optional
from zoneinfo import ZoneInfo

from ...exceptions import ErrorCode, SchedulingError
from .availability_service import Slot
from .time_utils import TimeOfDay, day_of_week


@dataclass
class BookingPolicy:
    """Rules applied to public callers on top of raw availability."""
    allow_sunday_bookings: bool = False
    min_advance_hours: int = 24
    max_days_ahead: int = 30
    timezone: str = "America/Santiago"

    @classmethod
    def from_settings(cls, settings) -> "BookingPolicy":
        return cls(
            allow_sunday_bookings=settings.ALLOW_SUNDAY_BOOKINGS,
            min_advance_hours=settings.MIN_ADVANCE_HOURS,
            max_days_ahead=settings.MAX_DAYS_AHEAD,
            timezone=settings.TIMEZONE,
        )

    def now(self) -> datetime:
        return datetime.now(ZoneInfo(self.timezone)).replace(tzinfo=None)

    def day_refusal(self, day: date, now: Optional[datetime] = None) -> Optional[str]:
        now = now or self.now()
        if day < now.date():
            return "Date is in the past"
        if day_of_week(day) == 0 and not self.allow_sunday_bookings:
            return "Bookings are not taken on Sundays"
        if self.max_days_ahead and day > now.date() + timedelta(days=self.max_days_ahead):
            return f"Bookings open at most {self.max_days_ahead} days ahead"
        return None

    def is_bookable_day(self, day: date, now: Optional[datetime] = None) -> bool:
        return self.day_refusal(day, now) is None

    def _earliest_start(self, now: datetime) -> datetime:
        return now + timedelta(hours=self.min_advance_hours)

    def filter_slots(self, day: date, slots: List[Slot], now: Optional[datetime] = None) -> List[Slot]:
        now = now or self.now()
        if not self.is_bookable_day(day, now):
            return []
        earliest = self._earliest_start(now)
        return [s for s in slots if _at(day, s.start) >= earliest]

    def check_public_booking(self, day: date, start: TimeOfDay, now: Optional[datetime] = None) -> None:
        now = now or self.now()
        refusal = self.day_refusal(day, now)
        if refusal:
            raise SchedulingError(ErrorCode.OUTSIDE_BOOKING_WINDOW, refusal, {"date": day.isoformat()})
        if _at(day, start) < self._earliest_start(now):
            raise SchedulingError(
                ErrorCode.OUTSIDE_BOOKING_WINDOW,
                f"Bookings must be made at least {self.min_advance_hours} hours in advance",
                {"date": day.isoformat(), "time": start.short()},
            )


def _at(day: date, time_of_day: TimeOfDay) -> datetime:
    return datetime(day.year, day.month, day.day, time_of_day.hour, time_of_day.minute, time_of_day.second)
