"""
Single sync pass over one connection.
"""

from __future__ import annotations

import threading
from pathlib import Path

from ftransfer.connections.base import TransferClient
from ftransfer.connections.manager import create_client
from ftransfer.core.types import Connection, SyncSummary
from ftransfer.exceptions import ListingError, TransferConnectionError
from ftransfer.sync.engine import sync_directory
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.utils.formatting import bytes_to_human_readable
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.sync.runner")


class SyncRunner:
    """
    Runs one pass (connect, sync, close) for a connection.

    ``run_once`` is blocking and meant to be called from worker threads; several
    passes for different connections may run concurrently.
    """

    def __init__(
        self,
        download_root: str | Path,
        ledger: DownloadLedger,
        stop_event: threading.Event | None = None,
    ):
        self.download_root = Path(download_root)
        self.ledger = ledger
        self.stop_event = stop_event or threading.Event()
        self._active: set[TransferClient] = set()
        self._active_lock = threading.Lock()

    def local_dir_for(self, connection: Connection) -> Path:
        return self.download_root / connection.name

    def run_once(self, connection: Connection) -> SyncSummary:
        """
        Process ``connection`` once.

        Connection and root-listing failures are logged and reported in the
        summary; LedgerWriteError propagates.
        """
        summary = SyncSummary(connection=connection.name)
        local_dir = self.local_dir_for(connection)
        local_dir.mkdir(parents=True, exist_ok=True)

        with create_client(connection) as client:
            self._track(client)
            try:
                client.connect(connection)
                summary.connected = True
                logger.info(f"Successfully connected to {connection.protocol.value}: {connection.name}")
                sync_directory(
                    client,
                    connection.remote_path,
                    local_dir,
                    connection.max_depth,
                    connection,
                    self.ledger,
                    summary=summary,
                    stop_event=self.stop_event,
                )
            except TransferConnectionError as e:
                logger.error(f"Error connecting to {connection.name} ({connection.host}:{connection.port}): {e}")
            except ListingError as e:
                summary.listing_errors += 1
                logger.error(f"Error downloading files from {connection.name}: {e}")
            finally:
                self._untrack(client)

        if summary.downloaded or summary.failed or summary.mismatched:
            logger.info(
                f"Pass finished for {connection.name}: downloaded={summary.downloaded} "
                f"({bytes_to_human_readable(summary.bytes)}), skipped={summary.skipped_existing}, "
                f"mismatched={summary.mismatched}, failed={summary.failed}"
            )
        else:
            logger.debug(f"Pass finished for {connection.name}: nothing to do")
        return summary

    def abort(self) -> None:
        """Close every in-flight client so blocked transfers return."""
        with self._active_lock:
            clients = list(self._active)
        for client in clients:
            logger.warning(f"Aborting in-flight transfer: {client!r}")
            try:
                client.close()
            except Exception as e:
                logger.debug(f"Error closing {client!r}: {e}")

    def _track(self, client: TransferClient) -> None:
        with self._active_lock:
            self._active.add(client)

    def _untrack(self, client: TransferClient) -> None:
        with self._active_lock:
            self._active.discard(client)
