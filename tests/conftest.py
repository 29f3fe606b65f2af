"""
Pytest configuration for tests.

Every test gets its own data directory and a clean publish flag so nothing
reads or writes ~/.publish-gate or inherits PUBLISH_ENABLED from the shell.
"""
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import publish_gate.database as db_module
from publish_gate.database import init_db


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Point the data dir at tmp_path and drop gate env vars."""
    monkeypatch.setenv("PUBLISH_GATE_DATA_DIR", str(tmp_path / "data"))
    for var in ("PUBLISH_ENABLED", "PUBLISH_GATE_LEDGER_DIR", "PUBLISH_GATE_DATABASE_URL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def gate_db():
    """Set up an in-memory SQLite database for SqlStore tests."""
    db_module.reset_engine()

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )
    db_module._engine = engine
    db_module._SessionLocal = sessionmaker(
        autocommit=False, autoflush=False, bind=engine
    )
    init_db(engine)

    yield engine

    db_module.reset_engine()
