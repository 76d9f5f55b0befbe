from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.core.config import settings


def engine_options(database_url: str, timezone: str) -> dict[str, Any]:
    """Engine keyword arguments for ``database_url``.

    PostgreSQL sessions are pinned to the reporting timezone so that
    ``date(created_at)`` and naive timestamp bounds on ``timestamptz``
    columns are evaluated on local business days.
    """
    if database_url.startswith("sqlite"):
        # Single shared connection so an in-memory database survives across sessions
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    if database_url.startswith("postgresql"):
        return {"connect_args": {"options": f"-c timezone={timezone}"}}
    return {}


engine = create_engine(
    settings.DATABASE_URL,
    echo=False,
    **engine_options(settings.DATABASE_URL, settings.REPORT_TIMEZONE),
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
