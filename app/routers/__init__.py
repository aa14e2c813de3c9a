# Routers package
from . import availability_router
from . import appointments_router
from . import patients_router
from . import schedules_router

__all__ = [
    "availability_router",
    "appointments_router",
    "patients_router",
    "schedules_router",
]
