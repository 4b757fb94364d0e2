"""Shared pytest fixtures."""

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from sqlalchemy import Connection, create_engine

from batch_to_sqlite.db import create_tables


@pytest.fixture()
def connection() -> Iterator[Connection]:
    """In-memory SQLite connection with freshly created batch/log tables."""
    engine = create_engine("sqlite://")
    conn = engine.connect()
    create_tables(conn)
    try:
        yield conn
    finally:
        conn.close()
        engine.dispose()


@pytest.fixture()
def mock_connection() -> MagicMock:
    """Mock connection for failure-injection tests."""
    return MagicMock()


@pytest.fixture()
def database_path(tmp_path: Path) -> Path:
    return tmp_path / "status.db"
