"""``log`` table — one row per exported log line."""

from sqlalchemy import Column, DateTime, Table, Text

from batch_to_sqlite.db import Base

log_table = Table(
    "log",
    Base.metadata,
    # Empty when the message carried no correlation id.
    Column("id", Text, nullable=False),
    Column("ts", DateTime),
    Column("service", Text),
    Column("thread", Text),
)
