from dataclasses import dataclass
from typing import ContextManager, Protocol

from .appointments_repo import AppointmentsRepository
from .blocks_repo import ManualBlockRepository
from .catalog_repo import CatalogRepository
from .patients_repo import PatientRepository
from .schedule_repo import ScheduleRepository


@dataclass
class Repositories:
    schedules: ScheduleRepository
    blocks: ManualBlockRepository
    appointments: AppointmentsRepository
    patients: PatientRepository
    catalog: CatalogRepository


class Storage(Protocol):
    """Backing store chosen once at startup.

    ``unit()`` hands out the repositories for one logical operation
    (one request); implementations release their resources on exit.
    """

    name: str

    def unit(self) -> ContextManager[Repositories]:
        ...

    def init(self) -> None:
        ...
