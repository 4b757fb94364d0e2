"""``batch`` table — one row per job summary."""

from sqlalchemy import Column, DateTime, Table, Text

from batch_to_sqlite.db import Base

# No primary key: re-ingesting the same summary appends a duplicate row.
batch_table = Table(
    "batch",
    Base.metadata,
    Column("externalId", Text, nullable=False),
    # Correlation id extracted from the job name.
    Column("id", Text, nullable=False),
    Column("name", Text, nullable=False),
    Column("created", DateTime),
    Column("started", DateTime),
    Column("stopped", DateTime),
    Column("status", Text),
    Column("statusReason", Text),
)
