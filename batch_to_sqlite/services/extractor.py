"""Extractor service — parses job summaries and log exports into the batch/log tables.

Both paths read their input fully into memory, then insert one row per
record, each in its own committed transaction. Structural problems with the
input (bad JSON/CSV, missing header columns, malformed timestamps, a job name
without a correlation id) raise IngestError and stop the run. A row whose
insert fails is logged and skipped.
"""

import csv
import io
import logging
import re
from collections.abc import Iterator
from datetime import datetime
from typing import BinaryIO

from pydantic import ValidationError
from sqlalchemy import Connection, Insert
from sqlalchemy.exc import SQLAlchemyError

from batch_to_sqlite.models.batch import batch_table
from batch_to_sqlite.models.log import log_table
from batch_to_sqlite.schemas.job_summary import JobSummary, StatusesFile
from batch_to_sqlite.schemas.log_record import LogRecord
from batch_to_sqlite.services.correlation import (
    MissingCorrelationIdError,
    find_correlation_id,
    require_correlation_id,
)
from batch_to_sqlite.services.types import BatchRow
from batch_to_sqlite.util import from_epoch_millis, must_check

FIELD_DATE = "date"
FIELD_SERVICE = "Service"
FIELD_THREAD = "@thread_name"
FIELD_MESSAGE = "message"
REQUIRED_FIELDS = (FIELD_DATE, FIELD_SERVICE, FIELD_THREAD, FIELD_MESSAGE)

# e.g. 2021-12-11T06:25:15.107Z
_LOG_TIMESTAMP_RE = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z")
_LOG_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# A record is comma-separated fields, each either fully quoted (with "" for a
# literal quote) or free of quotes.
_CSV_FIELD = r'(?:"(?:[^"]|"")*"|[^",\r\n]*)'
_CSV_RECORD_RE = re.compile(rf"{_CSV_FIELD}(?:,{_CSV_FIELD})*(?:\r\n|\n|\r)?")


class IngestError(Exception):
    """Raised when an input file is structurally broken and cannot be trusted."""


def parse_statuses_file(raw: bytes, source: str) -> StatusesFile:
    """Validate *raw* JSON as a job-summary export; raise IngestError if it is not one."""
    try:
        return StatusesFile.model_validate_json(raw)
    except ValidationError as exc:
        raise IngestError(f"Could not deserialize JSON from {source}: {exc}") from exc


def parse_log_timestamp(value: str) -> datetime:
    """Parse an exported log timestamp (``YYYY-MM-DDTHH:MM:SS.sssZ``) as naive UTC.

    Raises ValueError for anything else, including other ISO-8601 spellings.
    """
    if not _LOG_TIMESTAMP_RE.fullmatch(value):
        raise ValueError(f"expected YYYY-MM-DDTHH:MM:SS.sssZ, got {value!r}")
    return datetime.strptime(value, _LOG_TIMESTAMP_FORMAT)


def build_header(row: list[str]) -> dict[str, int]:
    """Map column names to positions; raise IngestError if a required column is absent."""
    header = {name: position for position, name in enumerate(row)}
    for field in REQUIRED_FIELDS:
        if field not in header:
            raise IngestError(f"Field {field!r} not found in header {row}")
    return header


def batch_row(summary: JobSummary) -> BatchRow:
    """Normalize one job summary into ``batch`` column values.

    Raises MissingCorrelationIdError if the job name carries no correlation id,
    and OverflowError if an epoch timestamp is outside the datetime range.
    """
    return BatchRow(
        externalId=summary.job_id,
        id=require_correlation_id(summary.job_name),
        name=summary.job_name,
        created=from_epoch_millis(summary.created_at),
        started=from_epoch_millis(summary.started_at),
        stopped=from_epoch_millis(summary.stopped_at),
        status=summary.status,
        statusReason=summary.status_reason,
    )


class Extractor:
    """Loads parsed records into the batch/log tables over one shared connection."""

    def __init__(self, connection: Connection, logger: logging.Logger | None = None) -> None:
        self._connection = connection
        self._logger = logger or logging.getLogger(__name__)

    def ingest_batch_records(self, stream: BinaryIO, source: str = "<stream>") -> int:
        """Load every job summary in *stream* into ``batch``.

        Returns the number of summaries read. Raises IngestError if the stream
        cannot be read, is not a summary export, or a job name has no
        correlation id (nothing from that record onwards is inserted).
        """
        try:
            raw = stream.read()
        except OSError as exc:
            raise IngestError(f"Could not read from file {source}: {exc}") from exc

        statuses = parse_statuses_file(raw, source)
        summaries = statuses.job_summary_list
        self._logger.info("Read %d batch records", len(summaries))

        for summary in summaries:
            try:
                row = batch_row(summary)
            except MissingCorrelationIdError as exc:
                raise IngestError(
                    f"Could not identify the internal ID from the batch job name "
                    f"(job {summary.job_id!r} in {source}): {exc}"
                ) from exc
            except OverflowError as exc:
                raise IngestError(
                    f"Timestamp out of range for job {summary.job_id!r} in {source}: {exc}"
                ) from exc
            self._insert(batch_table.insert().values(**row), f"batch record {summary}")
        return len(summaries)

    def ingest_log_records(self, stream: BinaryIO, source: str = "<stream>") -> int:
        """Load every data row of a CSV log export in *stream* into ``log``.

        Expected input:

            date,Service,@thread_name,message
            2021-12-11T06:25:15.107Z,worker,thread-1,Submitting job [c86a5ae7-3d84-405e-be0d-5936bbb18ab3] to Batch

        Returns the number of data rows (header excluded).
        """
        rows = self._read_csv(stream, source)
        if not rows:
            raise IngestError(f"No header row in CSV file {source}")
        header = build_header(rows[0])

        for row_number, row in enumerate(rows[1:], 2):
            record = self._log_record(header, row, row_number, source)
            values = {
                "id": record.correlation_id,
                "ts": record.timestamp,
                "service": record.service,
                "thread": record.thread,
            }
            self._insert(log_table.insert().values(**values), f"log row {row_number} of {source}")

        count = len(rows) - 1
        self._logger.info("Read %d log records", count)
        return count

    def _read_csv(self, stream: BinaryIO, source: str) -> list[list[str]]:
        text = io.TextIOWrapper(stream, encoding="utf-8-sig", newline="")
        consumed: list[str] = []

        def physical_lines() -> Iterator[str]:
            for line in text:
                consumed.append(line)
                yield line

        rows: list[list[str]] = []
        try:
            reader = csv.reader(physical_lines(), strict=True)
            for row in reader:
                # csv accepts a quote inside an unquoted field; reject it here.
                record = "".join(consumed)
                consumed.clear()
                if not _CSV_RECORD_RE.fullmatch(record):
                    raise csv.Error(f'bare " in non-quoted field on line {reader.line_num}')
                if row:
                    rows.append(row)
        except (csv.Error, UnicodeDecodeError, OSError) as exc:
            raise IngestError(f"Failed to read as CSV the file {source}: {exc}") from exc
        finally:
            # Leave *stream* open; the caller owns it.
            text.detach()

        if rows:
            width = len(rows[0])
            for row_number, row in enumerate(rows[1:], 2):
                if len(row) != width:
                    raise IngestError(
                        f"Failed to read as CSV the file {source}: row {row_number} has "
                        f"{len(row)} fields, header has {width}"
                    )
        return rows

    def _log_record(
        self,
        header: dict[str, int],
        row: list[str],
        row_number: int,
        source: str,
    ) -> LogRecord:
        try:
            timestamp = parse_log_timestamp(row[header[FIELD_DATE]])
        except ValueError as exc:
            raise IngestError(
                f"Failed to parse timestamp rowNumber={row_number}, row={row} in {source}: {exc}"
            ) from exc
        return LogRecord(
            correlation_id=find_correlation_id(row[header[FIELD_MESSAGE]]),
            timestamp=timestamp,
            service=row[header[FIELD_SERVICE]],
            thread=row[header[FIELD_THREAD]],
        )

    def _insert(self, statement: Insert, description: str) -> bool:
        """Run one insert in its own transaction.

        Returns False (after rolling back) if the insert fails. Failures to
        begin, roll back or commit raise StoreError.
        """
        with must_check("begin a transaction"):
            transaction = self._connection.begin()
        try:
            self._connection.execute(statement)
        except SQLAlchemyError as exc:
            self._logger.error(
                "failed to read a record into the database, skipping %s: %s", description, exc
            )
            with must_check("roll back a failed insert"):
                transaction.rollback()
            return False
        with must_check("commit a transaction"):
            transaction.commit()
        self._logger.debug("inserted %s", description)
        return True
