from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
import logging

from ..application.ports.caller import CallerContext
from ..application.ports.schedule_repo import WeeklyScheduleInput
from ..application.services.schedule_admin_service import ScheduleAdminService
from ..auth import require_admin
from ..dependencies import get_schedule_admin_service
from ..exceptions import ErrorCode, SchedulingError
from ..schemas.common.common import MessageResponse
from ..schemas.schedules.schedule import (
    ManualBlockIn,
    ManualBlockResponse,
    ScheduleExceptionResponse,
    ScheduleExceptionUpsert,
    WeeklyScheduleReplace,
    WeeklyScheduleResponse,
    WeeklyScheduleToggle,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"], dependencies=[Depends(require_admin)])


def _internal(action: str, e: Exception) -> SchedulingError:
    logger.error(f"Error {action}: {str(e)}")
    return SchedulingError(ErrorCode.INTERNAL_ERROR, f"Failed {action}")


# Weekly hours
@router.get("/weekly", response_model=List[WeeklyScheduleResponse])
def list_weekly(service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        return [WeeklyScheduleResponse.from_dto(w) for w in service.list_weekly()]
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("listing weekly schedule", e)


@router.put("/weekly", response_model=List[WeeklyScheduleResponse])
def replace_weekly(payload: WeeklyScheduleReplace, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        entries = [WeeklyScheduleInput(e.dayOfWeek, e.startTime, e.endTime, e.active) for e in payload.schedules]
        return [WeeklyScheduleResponse.from_dto(w) for w in service.replace_weekly(entries)]
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("replacing weekly schedule", e)


@router.patch("/weekly/{schedule_id}", response_model=WeeklyScheduleResponse)
def toggle_weekly(schedule_id: int, payload: WeeklyScheduleToggle, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        return WeeklyScheduleResponse.from_dto(service.set_weekly_active(schedule_id, payload.active))
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("updating weekly schedule", e)


# Per-date exceptions
@router.get("/exceptions", response_model=List[ScheduleExceptionResponse])
def list_exceptions(
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    service: ScheduleAdminService = Depends(get_schedule_admin_service),
):
    try:
        return [ScheduleExceptionResponse.from_dto(e) for e in service.list_exceptions(start, end)]
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("listing schedule exceptions", e)


@router.put("/exceptions", response_model=ScheduleExceptionResponse)
def upsert_exception(payload: ScheduleExceptionUpsert, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        exception = service.upsert_exception(
            payload.date,
            payload.isAvailable,
            start_time=payload.startTime,
            end_time=payload.endTime,
            reason=payload.reason,
        )
        return ScheduleExceptionResponse.from_dto(exception)
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("saving schedule exception", e)


@router.delete("/exceptions/{day}", response_model=MessageResponse)
def delete_exception(day: str, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        service.delete_exception(day)
        return MessageResponse(message=f"Exception for {day} removed")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("removing schedule exception", e)


# Manual blocks
@router.get("/blocks", response_model=List[ManualBlockResponse])
def list_blocks(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    service: ScheduleAdminService = Depends(get_schedule_admin_service),
):
    try:
        return [ManualBlockResponse.from_dto(b) for b in service.list_blocks(date)]
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("listing blocks", e)


@router.post("/blocks", response_model=ManualBlockResponse, status_code=201)
def create_block(payload: ManualBlockIn, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        block = service.create_block(payload.date, payload.startTime, payload.endTime, payload.type, payload.description)
        return ManualBlockResponse.from_dto(block)
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("creating block", e)


@router.put("/blocks/{block_id}", response_model=ManualBlockResponse)
def update_block(block_id: int, payload: ManualBlockIn, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        block = service.update_block(block_id, payload.date, payload.startTime, payload.endTime, payload.type, payload.description)
        return ManualBlockResponse.from_dto(block)
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("updating block", e)


@router.delete("/blocks/{block_id}", response_model=MessageResponse)
def delete_block(block_id: int, service: ScheduleAdminService = Depends(get_schedule_admin_service)):
    try:
        service.delete_block(block_id)
        return MessageResponse(message="Block removed")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("removing block", e)
