"""
Sync subsystem.

Recursive download/verify/delete engine, the download ledger used for
deduplication, and the per-connection pass runner.
"""

from ftransfer.sync.engine import sync_directory
from ftransfer.sync.ledger import DownloadLedger
from ftransfer.sync.runner import SyncRunner
from ftransfer.core.types import (
    Connection,
    DownloadedFileRecord,
    EntryKind,
    Protocol,
    RemoteEntry,
    SyncSummary,
)

__all__ = [
    "Connection",
    "DownloadLedger",
    "DownloadedFileRecord",
    "EntryKind",
    "Protocol",
    "RemoteEntry",
    "SyncRunner",
    "SyncSummary",
    "sync_directory",
]
