from typing import Optional
from fastapi import APIRouter, Body, Depends, HTTPException, Query
import logging

from ..application.ports.caller import CallerContext
from ..application.services.scheduling_service import BookingResult, SchedulingService
from ..auth import get_caller, require_admin
from ..dependencies import get_scheduling_service
from ..exceptions import ErrorCode, SchedulingError
from ..schemas.appointments.appointment import (
    AdminAppointmentCreate,
    AppointmentCreate,
    AppointmentEnvelope,
    AppointmentListResponse,
    AppointmentResponse,
    BookingResponse,
    CancelRequest,
    NotesUpdate,
    PatientResponse,
    PaymentUpdate,
    RescheduleRequest,
    StatusUpdate,
    TreatmentSummary,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def _booking_response(result: BookingResult, message: str) -> BookingResponse:
    return BookingResponse(
        message=message,
        appointment=AppointmentResponse.from_dto(result.appointment),
        patient=PatientResponse.from_dto(result.patient) if result.patient else None,
        treatment=TreatmentSummary.from_dto(result.treatment) if result.treatment else None,
    )


def _envelope(appointment, message: Optional[str] = None) -> AppointmentEnvelope:
    return AppointmentEnvelope(message=message, appointment=AppointmentResponse.from_dto(appointment))


def _internal(action: str, e: Exception) -> SchedulingError:
    logger.error(f"Error {action}: {str(e)}")
    return SchedulingError(ErrorCode.INTERNAL_ERROR, f"Failed {action}")


@router.post("", response_model=BookingResponse, status_code=201)
def book_appointment(
    payload: AppointmentCreate,
    caller: CallerContext = Depends(get_caller),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        result = service.create_appointment(
            caller,
            payload.date,
            payload.time,
            payload.patient.to_data(),
            treatment_id=payload.treatmentId,
            notes=payload.notes,
        )
        return _booking_response(result, "Appointment booked")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("booking appointment", e)


@router.post("/admin", response_model=BookingResponse, status_code=201)
def create_admin_appointment(
    payload: AdminAppointmentCreate,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        result = service.create_appointment(
            caller,
            payload.date,
            payload.startTime,
            payload.patient.to_data(),
            treatment_id=payload.treatmentId,
            end_time=payload.endTime,
            notes=payload.notes,
        )
        return _booking_response(result, "Appointment created")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("creating appointment", e)


@router.get("", response_model=AppointmentListResponse)
def list_appointments(
    date: Optional[str] = Query(None, description="YYYY-MM-DD"),
    status: Optional[str] = Query(None),
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        appointments = service.list_appointments(appointment_date=date, status=status)
        return AppointmentListResponse(
            total=len(appointments),
            appointments=[AppointmentResponse.from_dto(a) for a in appointments],
        )
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("listing appointments", e)


@router.get("/{appointment_id}", response_model=BookingResponse)
def get_appointment(
    appointment_id: int,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        return _booking_response(service.get_appointment(appointment_id), "Appointment found")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("fetching appointment", e)


@router.put("/{appointment_id}/reschedule", response_model=AppointmentEnvelope)
def reschedule_appointment(
    appointment_id: int,
    payload: RescheduleRequest,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        updated = service.reschedule(appointment_id, payload.newDate, payload.newStartTime, payload.newEndTime)
        return _envelope(updated, "Appointment rescheduled")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("rescheduling appointment", e)


@router.delete("/{appointment_id}", response_model=AppointmentEnvelope)
def cancel_appointment(
    appointment_id: int,
    payload: Optional[CancelRequest] = Body(None),
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        updated = service.cancel(appointment_id, payload.reason if payload else None)
        return _envelope(updated, "Appointment cancelled")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("cancelling appointment", e)


@router.patch("/{appointment_id}/status", response_model=AppointmentEnvelope)
def update_status(
    appointment_id: int,
    payload: StatusUpdate,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        updated = service.change_status(appointment_id, payload.status)
        return _envelope(updated, f"Status updated to {updated.status}")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("updating appointment status", e)


@router.patch("/{appointment_id}/notes", response_model=AppointmentEnvelope)
def update_notes(
    appointment_id: int,
    payload: NotesUpdate,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        return _envelope(service.update_notes(appointment_id, payload.notes), "Notes updated")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("updating notes", e)


@router.patch("/{appointment_id}/payment", response_model=AppointmentEnvelope)
def update_payment(
    appointment_id: int,
    payload: PaymentUpdate,
    caller: CallerContext = Depends(require_admin),
    service: SchedulingService = Depends(get_scheduling_service),
):
    try:
        updated = service.update_payment(
            appointment_id,
            payload.paymentStatus,
            payment_method=payload.paymentMethod,
            transaction_id=payload.transactionId,
        )
        return _envelope(updated, "Payment status updated")
    except HTTPException:
        raise
    except Exception as e:
        raise _internal("updating payment status", e)
