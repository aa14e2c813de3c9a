from fastapi import APIRouter, Depends, HTTPException, Query
from typing import List, Optional
import logging

from ..application.ports.caller import CallerContext
from ..application.ports.storage import Repositories
from ..application.services.availability_service import AvailabilityCalculator, DEFAULT_SEARCH_DAYS, Slot
from ..application.services.booking_policy import BookingPolicy
from ..application.services.time_utils import parse_date
from ..auth import get_caller
from ..dependencies import get_availability_calculator, get_policy
from ..exceptions import ErrorCode, SchedulingError
from ..schemas.appointments.appointment import (
    AvailabilityResponse,
    DayAvailability,
    MonthAvailabilityResponse,
    NextAvailableResponse,
)
from ..storage import get_repositories

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def _session_minutes(repos: Repositories, treatment_id: Optional[int]) -> Optional[int]:
    """Length of the session being looked up; None means one slot step."""
    if treatment_id is None:
        return None
    treatment = repos.catalog.get_treatment(treatment_id)
    if treatment is None or not treatment.is_active:
        raise SchedulingError(ErrorCode.NOT_FOUND, "Treatment not found or inactive", {"treatment_id": treatment_id})
    return treatment.duration_minutes or None


def _visible(caller: CallerContext, policy: BookingPolicy):
    def _filter(day, slots: List[Slot]) -> List[Slot]:
        return slots if caller.is_admin else policy.filter_slots(day, slots)
    return _filter


@router.get("", response_model=AvailabilityResponse)
def get_availability(
    date: str = Query(..., description="YYYY-MM-DD"),
    treatmentId: Optional[int] = Query(None, description="Only offer starts where this treatment's full session fits"),
    caller: CallerContext = Depends(get_caller),
    repos: Repositories = Depends(get_repositories),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    policy: BookingPolicy = Depends(get_policy),
):
    day = parse_date(date)
    if day is None:
        raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid date format. Use YYYY-MM-DD", {"date": date})
    duration = _session_minutes(repos, treatmentId)
    try:
        result = calculator.available_slots(day, duration)
        slots = _visible(caller, policy)(day, result.slots)
        available = [s.start.short() for s in slots]
        logger.info(f"Availability for {day}: {len(available)} of {result.total} slots offered")
        return AvailabilityResponse(date=day.isoformat(), availableSlots=available, totalSlots=len(available))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing availability for {date}: {str(e)}")
        raise SchedulingError(ErrorCode.INTERNAL_ERROR, "Failed to compute availability")


@router.get("/month", response_model=MonthAvailabilityResponse)
def get_month_availability(
    year: int = Query(..., ge=2000, le=2100),
    month: int = Query(..., ge=1, le=12),
    treatmentId: Optional[int] = Query(None),
    caller: CallerContext = Depends(get_caller),
    repos: Repositories = Depends(get_repositories),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    policy: BookingPolicy = Depends(get_policy),
):
    duration = _session_minutes(repos, treatmentId)
    try:
        visible = _visible(caller, policy)
        days = []
        for result in calculator.month_summary(year, month, duration):
            count = len(visible(result.date, result.slots))
            days.append(DayAvailability(date=result.date.isoformat(), availableSlots=count, available=count > 0))
        return MonthAvailabilityResponse(year=year, month=month, days=days)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error computing availability for {year}-{month:02d}: {str(e)}")
        raise SchedulingError(ErrorCode.INTERNAL_ERROR, "Failed to compute monthly availability")


@router.get("/next", response_model=NextAvailableResponse)
def get_next_available(
    treatmentId: Optional[int] = Query(None),
    from_date: Optional[str] = Query(None, alias="from", description="YYYY-MM-DD, defaults to today"),
    caller: CallerContext = Depends(get_caller),
    repos: Repositories = Depends(get_repositories),
    calculator: AvailabilityCalculator = Depends(get_availability_calculator),
    policy: BookingPolicy = Depends(get_policy),
):
    start_day = policy.now().date()
    if from_date is not None:
        start_day = parse_date(from_date)
        if start_day is None:
            raise SchedulingError(ErrorCode.VALIDATION_ERROR, "Invalid date format. Use YYYY-MM-DD", {"from": from_date})
    duration = _session_minutes(repos, treatmentId)
    try:
        found = calculator.next_available(start_day, duration, slot_filter=_visible(caller, policy))
        if found is None:
            return NextAvailableResponse(found=False, message=f"No free slot in the next {DEFAULT_SEARCH_DAYS} days")
        day, slot = found
        return NextAvailableResponse(found=True, date=day.isoformat(), time=slot.start.short(), endTime=slot.end.short())
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error searching next free slot from {start_day}: {str(e)}")
        raise SchedulingError(ErrorCode.INTERNAL_ERROR, "Failed to find the next free slot")
