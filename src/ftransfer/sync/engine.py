"""
Recursive download/verify/delete engine.

For each remote directory, up to a depth bound:

1. list entries
2. recurse into subdirectories (mirrored locally)
3. for each file: name filter, ledger check, stream copy to ``<name>.part``,
   size verification, rename into place, ledger record, remote delete

A file is deleted on the server only after it is verified locally and
recorded in the ledger. A failure on one entry never stops its siblings.
"""

from __future__ import annotations

import os
import posixpath
import re
import threading
import time
from datetime import datetime
from functools import lru_cache
from pathlib import Path

from ftransfer.connections.base import TransferClient
from ftransfer.core.types import Connection, DownloadedFileRecord, RemoteEntry, SyncSummary
from ftransfer.exceptions import LedgerError, LedgerWriteError, ListingError
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.utils.formatting import bytes_to_human_readable
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.sync.engine")

PART_SUFFIX = ".part"
COPY_CHUNK_SIZE = 1024 * 1024


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def matches_filter(file_name: str, pattern: str) -> bool:
    """
    Unanchored regex search on the bare file name; an empty pattern matches all.

    An invalid pattern matches nothing.
    """
    if not pattern:
        return True
    try:
        return _compile(pattern).search(file_name) is not None
    except re.error as e:
        logger.debug(f"Error matching regex: {e}")
        return False


def sync_directory(
    client: TransferClient,
    remote_path: str,
    local_path: str | Path,
    depth: int,
    connection: Connection,
    ledger: DownloadLedger,
    summary: SyncSummary | None = None,
    stop_event: threading.Event | None = None,
) -> SyncSummary:
    """
    Mirror ``remote_path`` into ``local_path``, moving each new file off the server.

    Args:
        client: Connected transfer client
        remote_path: Remote directory to process
        local_path: Local directory mirroring ``remote_path`` (must exist)
        depth: Remaining recursion levels; 0 does nothing, 1 is this directory only
        connection: Connection the client belongs to (server name, filter)
        ledger: Download ledger
        summary: Counters to accumulate into (created when omitted)
        stop_event: When set, no new entries are started

    Returns:
        The accumulated SyncSummary

    Raises:
        ListingError: if ``remote_path`` itself cannot be listed
        LedgerWriteError: if a download record cannot be written
    """
    if summary is None:
        summary = SyncSummary(connection=connection.name)
    if depth <= 0:
        return summary

    entries = client.list_directory(remote_path)
    local_dir = Path(local_path)

    for entry in entries:
        if stop_event is not None and stop_event.is_set():
            logger.debug(f"Stop requested, leaving {remote_path}")
            break

        logger.debug(
            f"Found file: {entry.name}, Size: {bytes_to_human_readable(entry.size)}, IsDir: {entry.is_directory}"
        )
        remote_entry_path = posixpath.join(remote_path, entry.name)

        if entry.is_directory:
            _sync_subdirectory(
                client, remote_entry_path, local_dir / entry.name, depth, connection, ledger, summary, stop_event
            )
        elif entry.is_file:
            _sync_file(client, entry, remote_entry_path, local_dir / entry.name, connection, ledger, summary)

    return summary


def _sync_subdirectory(
    client: TransferClient,
    remote_path: str,
    local_path: Path,
    depth: int,
    connection: Connection,
    ledger: DownloadLedger,
    summary: SyncSummary,
    stop_event: threading.Event | None,
) -> None:
    summary.directories += 1
    try:
        local_path.mkdir(parents=True, exist_ok=True)
        sync_directory(client, remote_path, local_path, depth - 1, connection, ledger, summary, stop_event)
    except LedgerWriteError:
        raise
    except ListingError as e:
        summary.listing_errors += 1
        logger.error(f"Error downloading directory {remote_path}: {e}")
    except OSError as e:
        summary.failed += 1
        logger.error(f"Error creating local directory {local_path}: {e}")
    except Exception as e:
        summary.failed += 1
        logger.error(f"Unexpected error in directory {remote_path}: {e}", exc_info=True)


def _sync_file(
    client: TransferClient,
    entry: RemoteEntry,
    remote_path: str,
    local_path: Path,
    connection: Connection,
    ledger: DownloadLedger,
    summary: SyncSummary,
) -> None:
    if not matches_filter(entry.name, connection.file_name_regex):
        logger.debug(f"File does not match the regex mask: {entry.name}")
        summary.skipped_filtered += 1
        return

    try:
        if ledger.exists(entry.name, entry.size, connection.name):
            logger.warning(f"File already downloaded: {entry.name}")
            summary.skipped_existing += 1
            return
    except LedgerError as e:
        logger.error(f"Error checking ledger for {entry.name}, skipping: {e}")
        summary.failed += 1
        return

    part_path = local_path.with_name(local_path.name + PART_SUFFIX)
    start = time.monotonic()
    try:
        copied = _download(client, remote_path, part_path)
    except Exception as e:
        logger.error(f"Error downloading file {remote_path}: {e}")
        _remove_quietly(part_path)
        summary.failed += 1
        return
    elapsed = time.monotonic() - start
    logger.info(f"Downloaded file: {entry.name} in {elapsed:.3f}s")

    if copied != entry.size:
        logger.warning(f"File size mismatch for {entry.name}: expected {entry.size}, got {copied}")
        _remove_quietly(part_path)
        summary.mismatched += 1
        return
    logger.debug(f"File size match for {entry.name}: {copied} bytes")

    try:
        os.replace(part_path, local_path)
    except OSError as e:
        logger.error(f"Error moving {part_path} into place: {e}")
        _remove_quietly(part_path)
        summary.failed += 1
        return

    # Recorded before the remote delete: if this raises, the server copy is intact
    record = DownloadedFileRecord(
        file_name=entry.name,
        file_size=entry.size,
        server_name=connection.name,
        downloaded_at=datetime.now(),
    )
    ledger.record(record)
    logger.info(
        f"File entry saved: {record.file_name}, size: {bytes_to_human_readable(record.file_size)}, "
        f"downloaded at: {record.downloaded_at:%Y-%m-%d %H:%M:%S}"
    )
    summary.downloaded += 1
    summary.bytes += copied
    summary.downloaded_files.append(remote_path)

    try:
        client.delete(remote_path)
    except Exception as e:
        logger.error(f"Error deleting file from server {remote_path}: {e}")
        summary.delete_failed += 1
        return
    logger.debug(f"Deleted file from server: {remote_path}")


def _download(client: TransferClient, remote_path: str, part_path: Path) -> int:
    """Stream the remote file into ``part_path``. Returns the number of bytes written."""
    copied = 0
    with client.open_for_read(remote_path) as reader, open(part_path, "wb") as out:
        while True:
            chunk = reader.read(COPY_CHUNK_SIZE)
            if not chunk:
                break
            out.write(chunk)
            copied += len(chunk)
    return copied


def _remove_quietly(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug(f"Error deleting invalid local file {path}: {e}")
    else:
        logger.debug(f"Deleted invalid local file: {path}")
