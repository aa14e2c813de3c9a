from datetime import date

import pytest

from app.application.ports.catalog_repo import TreatmentDto
from app.application.ports.schedule_repo import WeeklyScheduleInput
from app.application.services.booking_policy import BookingPolicy
from app.application.services.scheduling_service import SchedulingService
from app.infrastructure.persistence.memory.memory_storage import MemoryStorage


class RecordingNotifier:
    def __init__(self):
        self.events = []

    def publish(self, event):
        self.events.append(event)


@pytest.fixture
def storage():
    s = MemoryStorage()
    catalog = s.repositories.catalog
    catalog.add_treatment(TreatmentDto(id=1, name="Individual therapy", kind="treatment", price=35000, duration_minutes=60))
    catalog.add_treatment(TreatmentDto(id=2, name="Couples therapy", kind="treatment", price=50000, duration_minutes=90))
    catalog.add_treatment(TreatmentDto(id=3, name="Retired workshop", kind="treatment", price=10000, duration_minutes=60, is_active=False))
    # Monday and Tuesday mornings
    s.repositories.schedules.replace_weekly([
        WeeklyScheduleInput(1, "09:00:00", "12:00:00"),
        WeeklyScheduleInput(2, "09:00:00", "12:00:00"),
    ])
    return s


@pytest.fixture
def repos(storage):
    return storage.repositories


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def open_policy():
    """No advance or horizon limits, so fixed future dates stay bookable."""
    return BookingPolicy(min_advance_hours=0, max_days_ahead=0)


@pytest.fixture
def service(repos, notifier, open_policy):
    return SchedulingService.from_repositories(repos, notifier=notifier, policy=open_policy)


@pytest.fixture
def monday():
    return date(2030, 1, 7)
