from dataclasses import dataclass
from typing import Optional, Protocol, Union

from .appointments_repo import AppointmentDto
from .catalog_repo import TreatmentDto
from .patients_repo import PatientDto


@dataclass
class AppointmentCreated:
    appointment: AppointmentDto
    patient: Optional[PatientDto]
    treatment: Optional[TreatmentDto]
    name: str = "appointment.created"


@dataclass
class AppointmentRescheduled:
    previous: AppointmentDto
    current: AppointmentDto
    patient: Optional[PatientDto]
    treatment: Optional[TreatmentDto]
    name: str = "appointment.rescheduled"


@dataclass
class AppointmentCancelled:
    appointment: AppointmentDto
    patient: Optional[PatientDto]
    reason: Optional[str] = None
    name: str = "appointment.cancelled"


AppointmentEvent = Union[AppointmentCreated, AppointmentRescheduled, AppointmentCancelled]


class Notifier(Protocol):
    def publish(self, event: AppointmentEvent) -> None:
        ...
