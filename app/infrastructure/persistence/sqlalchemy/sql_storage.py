from contextlib import contextmanager
from typing import Iterator
import logging

from sqlalchemy.engine import Engine
from sqlmodel import Session

from ....application.ports.storage import Repositories
from ....database import create_db_and_tables
from .repositories.appointments_repository_sql import SqlAppointmentsRepository
from .repositories.blocks_repository_sql import SqlManualBlockRepository
from .repositories.catalog_repository_sql import SqlCatalogRepository
from .repositories.patients_repository_sql import SqlPatientRepository
from .repositories.schedule_repository_sql import SqlScheduleRepository

logger = logging.getLogger(__name__)


class SqlStorage:
    """Relational storage; one Session and one transaction per unit of work."""

    name = "sql"

    def __init__(self, engine: Engine):
        self.engine = engine

    def init(self) -> None:
        create_db_and_tables(self.engine)

    @contextmanager
    def unit(self) -> Iterator[Repositories]:
        with Session(self.engine) as session:
            try:
                yield Repositories(
                    schedules=SqlScheduleRepository(session),
                    blocks=SqlManualBlockRepository(session),
                    appointments=SqlAppointmentsRepository(session),
                    patients=SqlPatientRepository(session),
                    catalog=SqlCatalogRepository(session),
                )
            except Exception:
                session.rollback()
                raise
            # patient writes only flush; anything still pending lands here
            session.commit()
