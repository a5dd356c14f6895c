"""
Download ledger.

Persistent record of every verified download, keyed by file name, size and
server name. A file whose key is present is never transferred again.

Backed by DuckDB through ibis. Writes go through raw SQL, reads through ibis
table expressions.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

import ibis

from ftransfer.core.types import DownloadedFileRecord
from ftransfer.exceptions import LedgerError, LedgerWriteError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.sync.ledger")

TABLE_NAME = "downloaded_files"


def _escape_sql_string(value: str) -> str:
    """Escape single quotes for SQL strings."""
    return value.replace("'", "''")


def _sql_value(value: Any) -> str:
    """Convert Python value to SQL string representation."""
    if value is None:
        return "NULL"
    elif isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    elif isinstance(value, (int, float)):
        return str(value)
    elif isinstance(value, datetime):
        return f"TIMESTAMP '{value.isoformat(sep=' ')}'"
    else:
        escaped = _escape_sql_string(str(value))
        return f"'{escaped}'"


def _to_datetime(value: Any) -> datetime:
    # pandas.Timestamp when read through ibis
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime()
    return value


class DownloadLedger:
    """
    Thread-safe ledger of downloaded files.

    All operations hold one re-entrant lock: DuckDB connections must not be
    used from several threads at once, and the group workers run in threads.
    """

    def __init__(self, path: str | Path = ":memory:"):
        self.path = str(path)
        self._lock = threading.RLock()
        self._connection = self._connect(self.path)
        self._initialize_schema()

    @staticmethod
    def _connect(path: str) -> ibis.BaseBackend:
        try:
            if path == ":memory:":
                return ibis.duckdb.connect()
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            return ibis.duckdb.connect(path)
        except Exception as e:
            error_str = str(e)
            if "lock" in error_str.lower() or "conflicting" in error_str.lower():
                raise LedgerError(
                    f"Cannot open ledger '{path}': file is locked by another process. "
                    f"Stop the other ftransfer instance first."
                ) from e
            raise LedgerError(f"Cannot open ledger '{path}': {error_str}") from e

    def _initialize_schema(self) -> None:
        """Create the ledger table if it doesn't exist."""
        try:
            with self._lock:
                self._connection.raw_sql(
                    f"""
                    CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                        file_name VARCHAR NOT NULL,
                        file_size BIGINT NOT NULL,
                        server_name VARCHAR NOT NULL,
                        downloaded_at TIMESTAMP NOT NULL
                    )
                    """
                )
        except Exception as e:
            raise LedgerError(f"Could not create ledger table: {e}") from e
        logger.debug(f"Ledger opened at {self.path}")

    def _table(self) -> ibis.Table:
        return self._connection.table(TABLE_NAME)

    def exists(self, file_name: str, file_size: int, server_name: str) -> bool:
        """
        Check whether this exact (name, size, server) triple was downloaded.

        Raises:
            LedgerError: if the lookup fails
        """
        try:
            with self._lock:
                t = self._table()
                matches = t.filter(
                    (t.file_name == file_name) & (t.file_size == int(file_size)) & (t.server_name == server_name)
                )
                return int(matches.count().execute()) > 0
        except Exception as e:
            raise LedgerError(f"error checking if file exists in database: {e}") from e

    def record(self, record: DownloadedFileRecord) -> None:
        """
        Insert one download record.

        Raises:
            LedgerWriteError: if the insert fails
        """
        values = ", ".join(
            _sql_value(v) for v in (record.file_name, int(record.file_size), record.server_name, record.downloaded_at)
        )
        query = f"INSERT INTO {TABLE_NAME} (file_name, file_size, server_name, downloaded_at) VALUES ({values})"
        try:
            with self._lock:
                self._connection.raw_sql(query)
        except Exception as e:
            raise LedgerWriteError(f"error inserting file info into database: {e}") from e
        logger.debug(f"Recorded download {record.server_name}/{record.file_name} ({record.file_size} bytes)")

    def list_records(self, page: int = 1, limit: int = 20) -> tuple[list[DownloadedFileRecord], int]:
        """
        One page of records, most recent download first.

        Returns:
            (records on this page, total number of records)
        """
        offset = (max(page, 1) - 1) * limit
        try:
            with self._lock:
                t = self._table()
                total = int(t.count().execute())
                df = t.order_by(ibis.desc(t.downloaded_at)).limit(limit, offset=offset).execute()
        except Exception as e:
            raise LedgerError(f"error querying ledger: {e}") from e

        records = [
            DownloadedFileRecord(
                file_name=row["file_name"],
                file_size=int(row["file_size"]),
                server_name=row["server_name"],
                downloaded_at=_to_datetime(row["downloaded_at"]),
            )
            for row in df.to_dict("records")
        ]
        return records, total

    def count(self) -> int:
        try:
            with self._lock:
                return int(self._table().count().execute())
        except Exception as e:
            raise LedgerError(f"error counting ledger records: {e}") from e

    def clear(self) -> int:
        """Delete every record. Returns the number of rows removed."""
        try:
            with self._lock:
                removed = self.count()
                self._connection.raw_sql(f"DELETE FROM {TABLE_NAME}")
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"failed to truncate database: {e}") from e
        logger.info(f"Database truncated successfully ({removed} records)")
        return removed

    def delete_older_than(self, days: int = 7, now: datetime | None = None) -> int:
        """Delete records downloaded more than ``days`` ago. Returns the number removed."""
        cutoff = (now or datetime.now()) - timedelta(days=days)
        try:
            with self._lock:
                t = self._table()
                removed = int(t.filter(t.downloaded_at < cutoff).count().execute())
                self._connection.raw_sql(f"DELETE FROM {TABLE_NAME} WHERE downloaded_at < {_sql_value(cutoff)}")
        except Exception as e:
            raise LedgerError(f"failed to delete old entries: {e}") from e
        logger.info(f"Deleted {removed} ledger records older than {days} days")
        return removed

    def close(self) -> None:
        with self._lock:
            connection, self._connection = self._connection, None
            if connection is None:
                return
            try:
                connection.disconnect()
            except Exception as e:
                logger.warning(f"Error closing ledger: {e}")

    def __enter__(self) -> DownloadLedger:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()
