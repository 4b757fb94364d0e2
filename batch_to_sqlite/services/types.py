"""Shared typed row payloads for the ingestion services."""

from datetime import datetime
from typing import TypedDict


class BatchRow(TypedDict):
    externalId: str
    id: str
    name: str
    created: datetime
    started: datetime
    stopped: datetime
    status: str
    statusReason: str
