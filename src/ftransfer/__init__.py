"""
ftransfer - moves files off SFTP, FTP and FTP-over-SSH servers.

Each configured connection is polled on a fixed cycle; every new file is
downloaded, verified by size, recorded in the download ledger and then
deleted from the server.
"""

__version__ = "0.3.0"

from ftransfer.config import Config, load_config
from ftransfer.connections import create_client
from ftransfer.core.scheduler import GroupScheduler, split_connections
from ftransfer.core.types import Connection, DownloadedFileRecord, EntryKind, Protocol, RemoteEntry, SyncSummary
from ftransfer.exceptions import (
    ConfigurationError,
    FtransferError,
    InitializationError,
    LedgerError,
    LedgerWriteError,
    ListingError,
    TransferConnectionError,
    TransferError,
)
from ftransfer.sync import DownloadLedger, SyncRunner, sync_directory

__all__ = [
    "__version__",
    # Configuration
    "Config",
    "load_config",
    # Types
    "Connection",
    "DownloadedFileRecord",
    "EntryKind",
    "Protocol",
    "RemoteEntry",
    "SyncSummary",
    # Transfer
    "create_client",
    "sync_directory",
    "DownloadLedger",
    "SyncRunner",
    "GroupScheduler",
    "split_connections",
    # Exceptions
    "ConfigurationError",
    "FtransferError",
    "InitializationError",
    "LedgerError",
    "LedgerWriteError",
    "ListingError",
    "TransferConnectionError",
    "TransferError",
]
