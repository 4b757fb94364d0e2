"""Pydantic schema for one normalized row of a log export."""

from datetime import datetime

from pydantic import BaseModel


class LogRecord(BaseModel):
    correlation_id: str  # "" when the message has no correlation id
    timestamp: datetime
    service: str
    thread: str
