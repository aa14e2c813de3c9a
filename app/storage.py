from typing import Iterator
import logging

from fastapi import Request

from .application.ports.storage import Repositories, Storage
from .config import Settings
from .database import make_engine
from .infrastructure.persistence.memory.memory_storage import MemoryStorage
from .infrastructure.persistence.sqlalchemy.sql_storage import SqlStorage

logger = logging.getLogger(__name__)

STORAGE_BACKENDS = ("sql", "memory")


def build_storage(settings: Settings) -> Storage:
    """Pick the storage implementation once, at startup."""
    backend = (settings.STORAGE_BACKEND or "sql").strip().lower()
    if backend == "memory":
        logger.info("Using in-memory storage")
        return MemoryStorage()
    if backend == "sql":
        logger.info(f"Using SQL storage ({'sqlite' if settings.uses_sqlite else 'server database'})")
        return SqlStorage(make_engine(settings))
    raise ValueError(f"Unknown STORAGE_BACKEND {settings.STORAGE_BACKEND!r}; expected one of {', '.join(STORAGE_BACKENDS)}")


def get_repositories(request: Request) -> Iterator[Repositories]:
    storage: Storage = request.app.state.storage
    with storage.unit() as repos:
        yield repos
