"""
Type definitions for connections, remote listings and download records.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class Protocol(str, Enum):
    """Remote transfer protocol of a connection."""

    SFTP = "sftp"
    FTP = "ftp"
    FTP_OVER_SSH = "ftpoverssh"


@dataclass(frozen=True)
class Connection:
    """
    One configured remote server.

    Immutable for the lifetime of a run. ``reachable`` is filled in once by the
    pre-flight probe and is only ever displayed, never used to skip a pass.
    """

    name: str
    host: str
    port: int
    protocol: Protocol
    username: str
    password: str
    remote_path: str
    max_depth: int = 1
    file_name_regex: str = ""
    poll_delay_s: float = 0
    private_key_path: str | None = None
    # Target of the FTP control connection as seen from the SSH server
    tunnel_ftp_host: str = "127.0.0.1"
    tunnel_ftp_port: int = 21
    reachable: bool | None = None

    def redacted(self) -> dict[str, Any]:
        """Connection fields safe to show in logs and the management API."""
        data = asdict(self)
        data.pop("password")
        data["protocol"] = self.protocol.value
        data["uses_private_key"] = bool(data.pop("private_key_path"))
        return data


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


@dataclass(frozen=True)
class RemoteEntry:
    """A single row of a remote directory listing."""

    name: str
    size: int
    kind: EntryKind = EntryKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryKind.DIRECTORY

    @property
    def is_file(self) -> bool:
        return self.kind is EntryKind.FILE


@dataclass(frozen=True)
class DownloadedFileRecord:
    """Ledger row for one verified download. Keyed by name, size and server."""

    file_name: str
    file_size: int
    server_name: str
    downloaded_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "file_name": self.file_name,
            "file_size": self.file_size,
            "server_name": self.server_name,
            "downloaded_at": self.downloaded_at.isoformat(),
        }


@dataclass
class SyncSummary:
    """Counters for one sync pass over a connection."""

    connection: str
    connected: bool = False
    downloaded: int = 0
    bytes: int = 0
    skipped_filtered: int = 0
    skipped_existing: int = 0
    mismatched: int = 0
    failed: int = 0
    delete_failed: int = 0
    directories: int = 0
    listing_errors: int = 0
    downloaded_files: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["downloaded_files"] = self.downloaded_files[:25]
        return data
