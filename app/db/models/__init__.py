# Models package (re-export feature modules for stable imports)
from .health.appointment import Appointment
from .health.patient import Patient
from .catalog.treatment import Treatment
from .scheduling.schedule import WeeklySchedule, ScheduleException
from .scheduling.block import ManualBlock

__all__ = [
    "Appointment",
    "Patient",
    "Treatment",
    "WeeklySchedule",
    "ScheduleException",
    "ManualBlock",
]
