from fastapi import APIRouter, Depends, HTTPException
import logging

from ..application.ports.caller import CallerContext
from ..application.services.scheduling_service import SchedulingService
from ..auth import require_admin
from ..dependencies import get_scheduling_service
from ..exceptions import ErrorCode, SchedulingError
from ..schemas.appointments.appointment import PatientResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/patients", tags=["Patients"])


@router.get("/{rut}", response_model=PatientResponse)
def get_patient(
    rut: str,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        return PatientResponse.from_dto(service.find_patient(rut))
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Error looking up patient: {str(e)}")
        raise SchedulingError(ErrorCode.INTERNAL_ERROR, "Failed to look up patient")
