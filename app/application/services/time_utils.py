import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional, Union


_HH_MM = re.compile(r"^\d{2}:\d{2}$")
_HH_MM_SS = re.compile(r"^\d{2}:\d{2}:\d{2}$")


@dataclass(frozen=True, order=True)
class TimeOfDay:
    hour: int
    minute: int
    second: int = 0

    @property
    def minutes(self) -> int:
        """Minutes since midnight; seconds are not part of overlap math."""
        return self.hour * 60 + self.minute

    def isoformat(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}:{self.second:02d}"

    def short(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"

    @classmethod
    def from_minutes(cls, minutes: int) -> "TimeOfDay":
        if minutes < 0 or minutes >= 24 * 60:
            raise ValueError(f"{minutes} is outside a single day")
        return cls(minutes // 60, minutes % 60, 0)

    def __str__(self) -> str:
        return self.isoformat()


TimeLike = Union[str, TimeOfDay]


def normalize_time_string(raw: Optional[str]) -> Optional[str]:
    """Bring an incoming time string to HH:MM:SS.

    HH:MM gets ``:00`` appended, HH:MM:SS passes through and malformed
    strings with extra colons keep their first two components. Returns
    None when nothing usable is left.
    """
    if raw is None:
        return None
    value = str(raw).strip()
    if not value:
        return None
    if _HH_MM_SS.match(value):
        return value
    if _HH_MM.match(value):
        return value + ":00"
    parts = value.split(":")
    if len(parts) >= 2:
        return f"{parts[0]}:{parts[1]}:00"
    return None


def normalize_time(raw: Optional[TimeLike]) -> Optional[TimeOfDay]:
    """Parse a time into a TimeOfDay, or None on any format failure."""
    if isinstance(raw, TimeOfDay):
        return raw
    normalized = normalize_time_string(raw)
    if normalized is None:
        return None
    pieces = normalized.split(":")
    if len(pieces) != 3 or not all(p.isdigit() and 1 <= len(p) <= 2 for p in pieces):
        return None
    hour, minute, second = (int(p) for p in pieces)
    if hour > 23 or minute > 59 or second > 59:
        return None
    return TimeOfDay(hour, minute, second)


def overlaps(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    # half-open [a, b) against [c, d)
    return start_a < end_b and end_a > start_b


def parse_date(raw: Union[str, date, None]) -> Optional[date]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    try:
        return datetime.strptime(str(raw).strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def day_of_week(value: date) -> int:
    """0=Sunday .. 6=Saturday, the numbering the weekly schedule uses."""
    return (value.weekday() + 1) % 7
