# backend/booking_engine/database.py
"""
Engine, session factory and declarative base.

PostgreSQL connections carry a server-side statement_timeout so a stuck query
fails the tenant it belongs to instead of stalling a whole automation run.
SQLite is accepted for local development and the test suite.
"""

import logging
from time import monotonic
from typing import Any, Dict, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeMeta, Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from .core.config import settings

logger = logging.getLogger(__name__)


def _sqlite_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if url == "sqlite://" or ":memory:" in url:
        # A private in-memory database only exists on the connection that made it
        options["poolclass"] = StaticPool
    return options


def _postgres_options() -> Dict[str, Any]:
    timeout_ms = settings.database_statement_timeout_seconds * 1000
    return {
        "poolclass": QueuePool,
        "pool_size": settings.database_pool_size,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
        "connect_args": {
            "connect_timeout": 10,
            "application_name": "booking_engine",
            "options": f"-c statement_timeout={timeout_ms}",
        },
    }


def build_engine(url: str) -> Engine:
    options = _sqlite_options(url) if url.startswith("sqlite") else _postgres_options()
    built = create_engine(url, **options)
    event.listen(built, "connect", _on_connect)
    return built


def _on_connect(dbapi_connection: Any, connection_record: Any) -> None:
    connection_record.info["opened_at"] = monotonic()
    logger.debug("Opened database connection")


engine: Engine = build_engine(settings.database_url)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine, expire_on_commit=False)

Base: DeclarativeMeta = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session: committed on success, rolled back on any error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
