"""Pytest configuration for the Nest insights test suite."""

import os
import sys
from pathlib import Path

import pytest


def _ensure_test_env() -> None:
    """Seed required environment variables for tests."""
    os.environ.setdefault("NEST_DATABASE_URL", "sqlite:///:memory:")
    os.environ.setdefault("USER_TIMEZONE", "UTC")
    os.environ.setdefault("NEST_LOG_LEVEL", "DEBUG")


_ensure_test_env()

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))


@pytest.fixture
def session_factory(tmp_path):
    """Session factory bound to a fresh file-backed SQLite database."""
    from sqlalchemy.orm import sessionmaker

    from services.database import build_engine, create_tables

    engine = build_engine(f"sqlite:///{tmp_path / 'nest-test.db'}")
    create_tables(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()
