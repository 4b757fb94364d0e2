"""Correlation-id extraction from job names and log messages."""

import re

# Five hyphen-separated segments shaped like a UUID; segment contents are not
# validated beyond "no hyphen".
CORRELATION_ID_RE = re.compile(r"[^-]{8}-[^-]{4}-[^-]{4}-[^-]{4}-[^-]{12}")


class MissingCorrelationIdError(ValueError):
    """Raised when text that must carry a correlation id does not."""


def find_correlation_id(text: str) -> str:
    """Return the leftmost correlation id in *text*, or "" if there is none."""
    m = CORRELATION_ID_RE.search(text)
    return m.group(0) if m else ""


def require_correlation_id(text: str) -> str:
    """Like find_correlation_id, but raise MissingCorrelationIdError on no match."""
    correlation_id = find_correlation_id(text)
    if not correlation_id:
        raise MissingCorrelationIdError(f"Cannot identify a correlation id in: {text!r}")
    return correlation_id
