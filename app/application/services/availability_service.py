from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, List, Optional, Tuple
import calendar
import logging

from ..ports.appointments_repo import AppointmentsRepository, AppointmentStatus
from ..ports.blocks_repo import ManualBlockRepository
from ..ports.schedule_repo import ScheduleRepository
from .time_utils import TimeOfDay, day_of_week, normalize_time, overlaps

logger = logging.getLogger(__name__)

DEFAULT_SLOT_MINUTES = 60
DEFAULT_SEARCH_DAYS = 30


@dataclass(frozen=True)
class Window:
    start: TimeOfDay
    end: TimeOfDay

    def contains(self, start_minutes: int, end_minutes: int) -> bool:
        return self.start.minutes <= start_minutes and end_minutes <= self.end.minutes


@dataclass(frozen=True, order=True)
class Slot:
    start: TimeOfDay
    end: TimeOfDay


SlotFilter = Callable[[date, List[Slot]], List[Slot]]


@dataclass
class AvailabilityResult:
    date: date
    slots: List[Slot] = field(default_factory=list)
    windows: List[Window] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.slots)

    def start_times(self) -> List[str]:
        return [s.start.short() for s in self.slots]


def slice_window(window: Window, slot_minutes: int, duration_minutes: Optional[int] = None) -> List[Slot]:
    """Candidate slots every ``slot_minutes`` whose full duration fits the window.

    The duration defaults to the step, which gives back-to-back slots and
    drops a trailing partial one. A 90 minute session in a 09:00-12:00
    window stepped hourly yields 09:00 and 10:00 only.
    """
    length = duration_minutes or slot_minutes
    slots = []
    current = window.start.minutes
    while current + length <= window.end.minutes:
        slots.append(Slot(TimeOfDay.from_minutes(current), TimeOfDay.from_minutes(current + length)))
        current += slot_minutes
    return slots


def days_of_month(year: int, month: int) -> List[date]:
    _, last = calendar.monthrange(year, month)
    return [date(year, month, d) for d in range(1, last + 1)]


class AvailabilityCalculator:
    """Free slots for a date from the schedule, bookings and manual blocks.

    Read only: nothing here writes to the stores, so two calls with the same
    store contents return the same result.
    """

    def __init__(self, schedules: ScheduleRepository, appointments: AppointmentsRepository, blocks: ManualBlockRepository, slot_minutes: int = DEFAULT_SLOT_MINUTES):
        if slot_minutes <= 0:
            raise ValueError("slot_minutes must be positive")
        self.schedules = schedules
        self.appointments = appointments
        self.blocks = blocks
        self.slot_minutes = slot_minutes

    def resolve_windows(self, day: date) -> List[Window]:
        exception = self.schedules.get_exception(day)
        if exception is not None:
            if not exception.is_available:
                return []
            window = _window(exception.start_time, exception.end_time)
            return [window] if window else []

        windows = []
        for entry in self.schedules.list_weekly(day_of_week=day_of_week(day), active_only=True):
            window = _window(entry.start_time, entry.end_time)
            if window is None:
                logger.warning(f"Ignoring malformed weekly schedule {entry.id}: {entry.start_time}-{entry.end_time}")
                continue
            windows.append(window)
        return sorted(windows, key=lambda w: (w.start, w.end))

    def available_slots(self, day: date, duration_minutes: Optional[int] = None) -> AvailabilityResult:
        """Free start times for ``day``.

        ``duration_minutes`` is the session length being booked; each
        offered slot covers that whole length. Without it a slot is one
        step long.
        """
        if duration_minutes is not None and duration_minutes <= 0:
            raise ValueError("duration_minutes must be positive")
        windows = self.resolve_windows(day)
        if not windows:
            return AvailabilityResult(date=day)

        candidates = {}
        for window in windows:
            for slot in slice_window(window, self.slot_minutes, duration_minutes):
                candidates.setdefault(slot.start, slot)

        occupied_starts = set()
        booked_ranges = []
        for appt in self.appointments.list_for_date(day, statuses=AppointmentStatus.HOLDING):
            start = normalize_time(appt.start_time)
            end = normalize_time(appt.end_time)
            if start is None:
                continue
            occupied_starts.add(start.minutes)
            if end is not None:
                booked_ranges.append((start.minutes, end.minutes))

        blocked_ranges = []
        for block in self.blocks.list_for_date(day):
            start = normalize_time(block.start_time)
            end = normalize_time(block.end_time)
            if start is None or end is None:
                continue
            blocked_ranges.append((start.minutes, end.minutes))

        free = []
        for slot in candidates.values():
            s, e = slot.start.minutes, slot.end.minutes
            if s in occupied_starts:
                continue
            if any(overlaps(s, e, bs, be) for bs, be in booked_ranges):
                continue
            if any(overlaps(s, e, bs, be) for bs, be in blocked_ranges):
                continue
            free.append(slot)

        return AvailabilityResult(date=day, slots=sorted(free), windows=windows)

    def month_summary(self, year: int, month: int, duration_minutes: Optional[int] = None) -> List[AvailabilityResult]:
        """One result per calendar day of the month, in date order."""
        return [self.available_slots(day, duration_minutes) for day in days_of_month(year, month)]

    def next_available(
        self,
        from_day: date,
        duration_minutes: Optional[int] = None,
        days: int = DEFAULT_SEARCH_DAYS,
        slot_filter: Optional[SlotFilter] = None,
    ) -> Optional[Tuple[date, Slot]]:
        """Earliest free slot starting on ``from_day`` and looking ``days`` days ahead.

        ``slot_filter`` narrows each day's slots (the public booking rules)
        before the first one is taken.
        """
        for offset in range(days):
            day = from_day + timedelta(days=offset)
            slots = self.available_slots(day, duration_minutes).slots
            if slot_filter is not None:
                slots = slot_filter(day, slots)
            if slots:
                return day, slots[0]
        logger.info(f"No free slot in the {days} days from {from_day}")
        return None


def _window(start_raw: Optional[str], end_raw: Optional[str]) -> Optional[Window]:
    start = normalize_time(start_raw)
    end = normalize_time(end_raw)
    if start is None or end is None or end.minutes <= start.minutes:
        return None
    return Window(start, end)
