"""Database engine and session management."""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from config import settings
from models import Base

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def build_engine(url: str) -> Engine:
    """Create an engine for the given URL, allowing SQLite use across threads."""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, pool_pre_ping=True, connect_args=connect_args)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(settings.database.url)
    return _engine


def get_session_factory() -> sessionmaker:
    """Return the process-wide session factory bound to the configured database."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(bind=get_engine(), expire_on_commit=False)
    return _session_factory


def create_tables(engine: Engine) -> None:
    """Create any missing tables on the given engine."""
    Base.metadata.create_all(engine)
