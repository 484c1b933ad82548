"""Engine and session setup for the GoalPilot backend."""

from __future__ import annotations

import asyncio
import threading
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import DATABASE_URL


def _session_scope_identifier() -> Any:
    """Resolve a scoped session identifier that works for async and sync contexts."""

    try:
        task = asyncio.current_task()
    except RuntimeError:
        task = None

    if task is not None:
        return task

    return threading.get_ident()


engine_kwargs: Dict[str, Any] = {"pool_pre_ping": True}

if DATABASE_URL.startswith("sqlite"):
    connect_args = {"check_same_thread": False, "timeout": 30}
    if ":memory:" in DATABASE_URL:
        engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(DATABASE_URL, connect_args=connect_args, **engine_kwargs)

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):  # type: ignore[override]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=30000")
        cursor.close()
else:
    engine = create_engine(DATABASE_URL, **engine_kwargs)

SessionLocal = scoped_session(
    sessionmaker(
        bind=engine, autocommit=False, autoflush=False, expire_on_commit=False
    ),
    scopefunc=_session_scope_identifier,
)

Base = declarative_base()


def init_database() -> None:
    """Create all database tables."""
    # Import models to ensure they are registered with the metadata
    from . import models  # noqa: F401  # pylint: disable=unused-import

    models.Base.metadata.create_all(bind=engine)


def reset_database() -> None:
    """Drop and recreate every table; used by tests and local resets."""
    from . import models  # noqa: F401  # pylint: disable=unused-import

    SessionLocal.remove()
    models.Base.metadata.drop_all(bind=engine)
    models.Base.metadata.create_all(bind=engine)
