"""
Persistence gateway.

The engine is created once per process by the application lifespan and kept
on ``app.state``; request handlers receive a session through ``get_db``.
"""

import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from alesteb.core.config import Settings

logger = logging.getLogger(__name__)


def create_db_engine(settings: Settings) -> Engine:
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if url == "sqlite://" or ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=settings.DATABASE_ECHO, **kwargs)

    return create_engine(
        url,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


def init_db(engine: Engine) -> None:
    """Create all tables"""
    # Import models so they are registered on the metadata
    import alesteb.models  # noqa: F401

    SQLModel.metadata.create_all(engine)


def get_db(request: Request) -> Iterator[Session]:
    with Session(request.app.state.engine) as session:
        yield session


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Scoped transaction: commit when the block completes, roll back and
    re-raise on any exception. The session itself is released by ``get_db``.
    """
    try:
        yield db
        db.commit()
    except Exception:
        logger.debug("Rolling back transaction")
        db.rollback()
        raise
