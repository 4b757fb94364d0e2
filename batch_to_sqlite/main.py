"""Command-line entry point: load job summaries and log exports into SQLite.

Usage:
    batch-to-sqlite --input-file-batch jobs.json [--input-file-batch more.json]
                    --input-file-logs logs.csv [--database status.db] [--debug]

The batch and log tables are dropped and recreated on every run. All summary
files are loaded before any log file. Exits 1 on the first fatal error.
"""

import argparse
import logging
import os
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from batch_to_sqlite.db import DEFAULT_DATABASE_LOCATION, StoreError, create_tables, make_engine
from batch_to_sqlite.services.extractor import Extractor, IngestError
from batch_to_sqlite.util import safe_close

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"
DATABASE_ENV_VAR = "BATCH_TO_SQLITE_DATABASE"


def configure_logging(debug: bool) -> logging.Logger:
    """Set up console logging and return the package logger at the requested level."""
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    logger = logging.getLogger("batch_to_sqlite")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    return logger


def build_parser() -> argparse.ArgumentParser:
    default_database = os.environ.get(DATABASE_ENV_VAR, DEFAULT_DATABASE_LOCATION)
    parser = argparse.ArgumentParser(
        prog="batch-to-sqlite",
        description="Load batch job summaries and log exports into a SQLite database.",
    )
    parser.add_argument(
        "--input-file-batch",
        type=Path,
        action="append",
        default=[],
        help="Input JSON file with batch job summaries (repeatable)",
    )
    parser.add_argument(
        "--input-file-logs",
        type=Path,
        action="append",
        default=[],
        help="Input CSV file with exported log lines (repeatable)",
    )
    parser.add_argument(
        "--database",
        default=default_database,
        help=f"SQLite database location (default: ${DATABASE_ENV_VAR} or {DEFAULT_DATABASE_LOCATION})",
    )
    parser.add_argument("--debug", action="store_true", help="Show debug messages.")
    return parser


def _open_input(path: Path) -> BinaryIO:
    try:
        return path.open("rb")
    except OSError as exc:
        raise IngestError(f"Failed to open input file: {path}, reason: {exc}") from exc


def run(
    batch_files: Sequence[Path],
    log_files: Sequence[Path],
    database_location: str | Path,
    logger: logging.Logger,
) -> BaseException | None:
    """Recreate the tables and ingest every input file in order.

    Returns the fatal error that stopped the run, or None. Every opened file
    and the database connection are closed on all paths.
    """
    engine = make_engine(database_location)
    try:
        connection = engine.connect()
    except SQLAlchemyError as exc:
        engine.dispose()
        return StoreError(f"Failed to open database file: {database_location}, reason: {exc}")

    error: BaseException | None = None
    opened_files: list[BinaryIO] = []
    try:
        create_tables(connection)
        extractor = Extractor(connection, logger)

        for path in batch_files:
            stream = _open_input(path)
            opened_files.append(stream)
            extractor.ingest_batch_records(stream, source=str(path))

        for path in log_files:
            stream = _open_input(path)
            opened_files.append(stream)
            extractor.ingest_log_records(stream, source=str(path))
    except (IngestError, StoreError) as exc:
        error = exc
    finally:
        for stream in opened_files:
            error = safe_close(stream, error, logger)
        error = safe_close(connection, error, logger)
        engine.dispose()
    return error


def main(argv: Sequence[str] | None = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.debug)

    for path in args.input_file_batch:
        if not path.exists():
            logger.error("Input file does not exist: %s", path)
            return 1

    error = run(args.input_file_batch, args.input_file_logs, args.database, logger)
    if error is not None:
        logger.error("%s", error)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
