"""Small helpers shared by the ingestion paths and the CLI."""

import logging
import re
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError

from batch_to_sqlite.db import StoreError

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN, _INT64_MAX = -(2**63), 2**63 - 1


class Closable(Protocol):
    def close(self) -> None: ...


def parse_optional_int(value: str) -> int | None:
    """Return *value* as an int, or None if it is empty or not a number.

    Only an optional sign followed by ASCII digits is accepted, within the
    64-bit signed range; whitespace, underscores and other digit scripts are not.
    """
    if value == "":
        return None
    if _INT_RE.fullmatch(value):
        number = int(value)
        if _INT64_MIN <= number <= _INT64_MAX:
            return number
    logger.error("Failed to convert string %r to integer", value)
    return None


def from_epoch_millis(millis: int) -> datetime:
    """Convert epoch milliseconds to a naive UTC datetime without float rounding.

    Raises OverflowError if the result falls outside the datetime range.
    """
    return _EPOCH + timedelta(milliseconds=millis)


@contextmanager
def must_check(action: str) -> Iterator[None]:
    """Turn a database failure inside the block into a fatal StoreError.

    Wraps operations (begin, commit, rollback) whose failure means the store
    is broken rather than the row being bad.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        raise StoreError(f"Failed to {action}: {exc}") from exc


def safe_close(
    resource: Closable,
    error: BaseException | None,
    log: logging.Logger = logger,
) -> BaseException | None:
    """Close *resource* and return the error the caller should report.

    A close failure is returned only when no earlier *error* exists;
    otherwise it is logged and the earlier error wins.
    """
    try:
        resource.close()
    except (OSError, SQLAlchemyError) as exc:
        if error is None:
            return exc
        log.warning("Failed to close %r: %s", resource, exc)
    return error
