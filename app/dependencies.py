from fastapi import Depends, Request

from .application.ports.storage import Repositories
from .application.services.availability_service import AvailabilityCalculator
from .application.services.booking_policy import BookingPolicy
from .application.services.schedule_admin_service import ScheduleAdminService
from .application.services.scheduling_service import SchedulingService
from .config import Settings
from .storage import get_repositories


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_policy(request: Request) -> BookingPolicy:
    return request.app.state.policy


def get_scheduling_service(
    request: Request,
    repos: Repositories = Depends(get_repositories),
) -> SchedulingService:
    settings = request.app.state.settings
    return SchedulingService.from_repositories(
        repos,
        notifier=request.app.state.notifier,
        policy=request.app.state.policy,
        default_session_minutes=settings.DEFAULT_SESSION_MINUTES,
        slot_minutes=settings.SLOT_MINUTES,
    )


def get_availability_calculator(
    repos: Repositories = Depends(get_repositories),
    settings: Settings = Depends(get_app_settings),
) -> AvailabilityCalculator:
    return AvailabilityCalculator(repos.schedules, repos.appointments, repos.blocks, settings.SLOT_MINUTES)


def get_schedule_admin_service(repos: Repositories = Depends(get_repositories)) -> ScheduleAdminService:
    return ScheduleAdminService(schedules=repos.schedules, blocks=repos.blocks)
