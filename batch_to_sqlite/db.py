"""SQLAlchemy engine setup and the fixed batch/log schema."""

import logging
from pathlib import Path
from urllib.parse import quote

from sqlalchemy import URL, Connection, Engine, Table, create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_LOCATION = "status.db"


class Base(DeclarativeBase):
    pass


class StoreError(Exception):
    """Raised when the database itself is unusable (DDL, connect, begin, commit)."""


def database_url(database_location: str | Path) -> URL:
    # URI mode so the shared-cache parameter reaches sqlite; the path is
    # percent-encoded so "?", "#" and "%" stay part of the file name.
    return URL.create(
        "sqlite",
        database=f"file:{quote(str(database_location))}",
        query={"cache": "shared", "uri": "true"},
    )


def make_engine(database_location: str | Path = DEFAULT_DATABASE_LOCATION) -> Engine:
    return create_engine(database_url(database_location))


def _ingest_tables() -> list[Table]:
    # Import models so Base.metadata includes them before drop/create.
    from batch_to_sqlite.models.batch import batch_table
    from batch_to_sqlite.models.log import log_table

    return [batch_table, log_table]


def create_tables(connection: Connection) -> None:
    """Drop and recreate the ``batch`` and ``log`` tables.

    Destructive: every run starts from empty tables.
    Raises StoreError if the DDL cannot be applied.
    """
    tables = _ingest_tables()
    try:
        with connection.begin():
            Base.metadata.drop_all(bind=connection, tables=tables, checkfirst=True)
            Base.metadata.create_all(bind=connection, tables=tables, checkfirst=True)
    except SQLAlchemyError as exc:
        raise StoreError(f"Failed to create the batch/log schema: {exc}") from exc
    logger.debug("recreated tables: %s", ", ".join(t.name for t in tables))
