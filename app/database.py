from sqlmodel import SQLModel, create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
import logging

from .config import Settings

logger = logging.getLogger(__name__)


def make_engine(settings: Settings) -> Engine:
    # Choose engine options based on database scheme
    db_url = settings.DATABASE_URL
    engine_kwargs = {}

    if db_url.startswith("sqlite"):
        # SQLite specific connect args
        engine_kwargs.update({
            "connect_args": {"check_same_thread": False, "timeout": settings.DB_POOL_TIMEOUT}
        })
        if db_url in ("sqlite://", "sqlite:///:memory:"):
            # every connection must see the same in-memory database
            engine_kwargs["poolclass"] = StaticPool
    else:
        # Better resiliency for managed Postgres
        engine_kwargs.update({
            "pool_pre_ping": True,
            "pool_recycle": 300,
            "pool_size": 5,
            "max_overflow": 10,
            "pool_timeout": settings.DB_POOL_TIMEOUT,
        })

    return create_engine(db_url, echo=settings.DEBUG, **engine_kwargs)


def create_db_and_tables(engine: Engine) -> None:
    # imported for their side effect of registering tables on SQLModel.metadata
    from .db import models  # noqa: F401

    SQLModel.metadata.create_all(engine)
    logger.info("Database tables ensured")
