import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from ...application.ports.appointments_repo import AppointmentDto
from ...application.ports.notifier import (
    AppointmentCancelled,
    AppointmentCreated,
    AppointmentEvent,
    AppointmentRescheduled,
    Notifier,
)
from ...application.ports.patients_repo import PatientDto


def _appointment(a: AppointmentDto) -> Dict[str, Any]:
    return {
        "id": a.id,
        "date": a.appointment_date.isoformat(),
        "start_time": a.start_time,
        "end_time": a.end_time,
        "status": a.status,
    }


def _recipient(p: Optional[PatientDto]) -> Optional[Dict[str, Any]]:
    if p is None:
        return None
    return {"rut": p.rut, "name": p.full_name, "email": p.email}


class LoggingNotifier(Notifier):
    """Writes each notification intent as one structured log line.

    Stands in for an email/SMS sender; the line carries everything a sender
    would need to render the message.
    """

    def __init__(self) -> None:
        self._logger = logging.getLogger(__name__)

    def publish(self, event: AppointmentEvent) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.utcnow().isoformat(),
            "event": event.name,
        }
        if isinstance(event, AppointmentCreated):
            entry["appointment"] = _appointment(event.appointment)
            entry["recipient"] = _recipient(event.patient)
            entry["treatment"] = event.treatment.name if event.treatment else None
        elif isinstance(event, AppointmentRescheduled):
            entry["previous"] = _appointment(event.previous)
            entry["appointment"] = _appointment(event.current)
            entry["recipient"] = _recipient(event.patient)
            entry["treatment"] = event.treatment.name if event.treatment else None
        elif isinstance(event, AppointmentCancelled):
            entry["appointment"] = _appointment(event.appointment)
            entry["recipient"] = _recipient(event.patient)
            entry["reason"] = event.reason
        self._logger.info(f"NOTIFY: {json.dumps(entry)}")


class NullNotifier(Notifier):
    def publish(self, event: AppointmentEvent) -> None:
        return None
