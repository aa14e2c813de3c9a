# app/schemas/appointments/appointment.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.catalog_repo import TreatmentDto
from ...application.ports.patients_repo import PatientData, PatientDto


class PatientIn(BaseModel):
    rut: str
    fullName: str
    email: str
    phone: Optional[str] = None
    birthDate: Optional[str] = None  # YYYY-MM-DD
    address: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    emergencyContactName: Optional[str] = None
    emergencyContactPhone: Optional[str] = None
    medicalNotes: Optional[str] = None

    def to_data(self) -> PatientData:
        return PatientData(
            rut=self.rut.strip(),
            full_name=self.fullName.strip(),
            email=self.email.strip().lower(),
            phone=self.phone,
            birth_date=self.birthDate,
            address=self.address,
            city=self.city,
            region=self.region,
            emergency_contact_name=self.emergencyContactName,
            emergency_contact_phone=self.emergencyContactPhone,
            medical_notes=self.medicalNotes,
        )


class AppointmentCreate(BaseModel):
    patient: PatientIn
    treatmentId: int
    date: str  # YYYY-MM-DD
    time: str  # HH:MM
    notes: Optional[str] = Field(default=None, max_length=2000)


class AdminAppointmentCreate(BaseModel):
    patient: PatientIn
    date: str
    startTime: str
    endTime: Optional[str] = None
    treatmentId: Optional[int] = None
    notes: Optional[str] = Field(default=None, max_length=2000)


class RescheduleRequest(BaseModel):
    newDate: str
    newStartTime: str
    newEndTime: str


class StatusUpdate(BaseModel):
    status: str


class CancelRequest(BaseModel):
    reason: Optional[str] = Field(default=None, max_length=500)


class NotesUpdate(BaseModel):
    notes: Optional[str] = Field(default=None, max_length=2000)


class PaymentUpdate(BaseModel):
    paymentStatus: str
    paymentMethod: Optional[str] = None
    transactionId: Optional[str] = None


class PatientResponse(BaseModel):
    id: int
    rut: str
    fullName: str
    email: str
    phone: Optional[str] = None
    createdAt: datetime
    updatedAt: datetime

    @classmethod
    def from_dto(cls, p: PatientDto) -> "PatientResponse":
        return cls(
            id=p.id,
            rut=p.rut,
            fullName=p.full_name,
            email=p.email,
            phone=p.phone,
            createdAt=p.created_at,
            updatedAt=p.updated_at,
        )


class TreatmentSummary(BaseModel):
    id: int
    name: str
    kind: str
    price: Optional[int] = None
    durationMinutes: Optional[int] = None

    @classmethod
    def from_dto(cls, t: TreatmentDto) -> "TreatmentSummary":
        return cls(id=t.id, name=t.name, kind=t.kind, price=t.price, durationMinutes=t.duration_minutes)


class AppointmentResponse(BaseModel):
    id: int
    date: str  # YYYY-MM-DD
    startTime: str  # HH:MM:SS
    endTime: str
    durationMinutes: int
    status: str
    patientRut: str
    treatmentId: Optional[int] = None
    amount: Optional[int] = None
    notes: Optional[str] = None
    paymentStatus: str
    paymentMethod: Optional[str] = None
    transactionId: Optional[str] = None
    cancellationReason: Optional[str] = None
    createdAt: datetime
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_dto(cls, a: AppointmentDto) -> "AppointmentResponse":
        return cls(
            id=a.id,
            date=a.appointment_date.isoformat(),
            startTime=a.start_time,
            endTime=a.end_time,
            durationMinutes=a.duration_minutes,
            status=a.status,
            patientRut=a.patient_rut,
            treatmentId=a.treatment_id,
            amount=a.amount,
            notes=a.notes,
            paymentStatus=a.payment_status,
            paymentMethod=a.payment_method,
            transactionId=a.transaction_id,
            cancellationReason=a.cancellation_reason,
            createdAt=a.created_at,
            updatedAt=a.updated_at,
        )


class BookingResponse(BaseModel):
    success: bool = True
    message: str
    appointment: AppointmentResponse
    patient: Optional[PatientResponse] = None
    treatment: Optional[TreatmentSummary] = None


class AppointmentEnvelope(BaseModel):
    success: bool = True
    message: Optional[str] = None
    appointment: AppointmentResponse


class AppointmentListResponse(BaseModel):
    success: bool = True
    total: int
    appointments: List[AppointmentResponse]


class AvailabilityResponse(BaseModel):
    date: str
    availableSlots: List[str]  # HH:MM
    totalSlots: int


class DayAvailability(BaseModel):
    date: str
    availableSlots: int
    available: bool


class MonthAvailabilityResponse(BaseModel):
    year: int
    month: int
    days: List[DayAvailability]


class NextAvailableResponse(BaseModel):
    found: bool
    date: Optional[str] = None
    time: Optional[str] = None  # HH:MM
    endTime: Optional[str] = None
    message: Optional[str] = None
