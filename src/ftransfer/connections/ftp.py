"""
FTP transfer client.

Plain ftplib session. Listing prefers MLSD and falls back to parsing Unix-style
LIST output for servers that do not implement it.
"""

from __future__ import annotations

import ftplib
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

from ftransfer.connections.base import TransferClient
from ftransfer.core.types import Connection, EntryKind, Protocol, RemoteEntry
from ftransfer.exceptions import ListingError, TransferConnectionError, TransferError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.ftp")

# Socket timeout once logged in; data transfers can stall longer than a dial
IO_TIMEOUT_S = 60.0

_MLSD_KINDS = {"file": EntryKind.FILE, "dir": EntryKind.DIRECTORY}
# Replies meaning "command not implemented" rather than a failed listing
_UNSUPPORTED_REPLIES = {"500", "501", "502", "504"}
# Undecodable names and malformed facts surface as ValueError
_LISTING_ERRORS = ftplib.all_errors + (ValueError,)


def parse_list_line(line: str) -> RemoteEntry | None:
    """
    Parse one line of Unix-style LIST output.

    ``-rw-r--r--   1 owner group   1024 Jan 01 12:00 report.csv``

    Returns None for the ``total`` header, ``.``/``..`` and unparseable lines.
    """
    parts = line.split(None, 8)
    if len(parts) < 9:
        return None
    perms, size, name = parts[0], parts[4], parts[8]
    if perms.startswith("d"):
        kind = EntryKind.DIRECTORY
    elif perms.startswith("-"):
        kind = EntryKind.FILE
    else:
        kind = EntryKind.OTHER
        if perms.startswith("l"):
            name = name.split(" -> ", 1)[0]
    if name in (".", ".."):
        return None
    return RemoteEntry(name=name, size=int(size) if size.isdigit() else 0, kind=kind)


class FTPSession(TransferClient):
    """ftplib-backed operations shared by the FTP and FTP-over-SSH variants."""

    def __init__(self, connect_timeout_s: float = 5.0, io_timeout_s: float = IO_TIMEOUT_S):
        super().__init__(connect_timeout_s)
        self.io_timeout_s = io_timeout_s
        self._ftp: ftplib.FTP | None = None
        self._mlsd_supported = True

    @property
    def is_connected(self) -> bool:
        return self._ftp is not None

    def _session(self) -> ftplib.FTP:
        if self._ftp is None:
            raise TransferError(f"{self!r} is not connected")
        return self._ftp

    def _login(self, ftp: ftplib.FTP, connection: Connection) -> None:
        """Authenticate an already-connected control channel and keep it."""
        try:
            ftp.login(connection.username, connection.password)
        except ftplib.all_errors as e:
            ftp.close()
            raise TransferConnectionError(f"failed to login to FTP: {e}", connection=connection.name) from e
        ftp.timeout = self.io_timeout_s
        if ftp.sock is not None:
            ftp.sock.settimeout(self.io_timeout_s)
        self._ftp = ftp

    def list_entries(self, path: str) -> list[RemoteEntry]:
        """Every entry of ``path``, classified as file, directory or other."""
        ftp = self._session()
        if self._mlsd_supported:
            try:
                return self._list_mlsd(ftp, path)
            except ftplib.error_perm as e:
                if str(e)[:3] not in _UNSUPPORTED_REPLIES:
                    raise ListingError(f"error reading directory {path}: {e}", path=path) from e
                logger.debug(f"MLSD rejected ({e}), falling back to LIST")
                self._mlsd_supported = False
            except _LISTING_ERRORS as e:
                raise ListingError(f"error reading directory {path}: {e}", path=path) from e

        lines: list[str] = []
        try:
            ftp.retrlines(f"LIST {path}", lines.append)
        except _LISTING_ERRORS as e:
            raise ListingError(f"error reading directory {path}: {e}", path=path) from e
        return [entry for entry in map(parse_list_line, lines) if entry is not None]

    def _list_mlsd(self, ftp: ftplib.FTP, path: str) -> list[RemoteEntry]:
        entries = []
        for name, facts in ftp.mlsd(path, facts=["type", "size"]):
            fact_type = facts.get("type", "").lower()
            if fact_type in ("cdir", "pdir") or name in (".", ".."):
                continue
            size = facts.get("size") or facts.get("sizd") or 0
            entries.append(
                RemoteEntry(name=name, size=int(size), kind=_MLSD_KINDS.get(fact_type, EntryKind.OTHER))
            )
        return entries

    @contextmanager
    def open_for_read(self, path: str) -> Iterator[BinaryIO]:
        ftp = self._session()
        try:
            ftp.voidcmd("TYPE I")
            conn = ftp.transfercmd(f"RETR {path}")
        except ftplib.all_errors as e:
            raise TransferError(f"error opening remote file {path}: {e}", path=path) from e

        try:
            with conn, conn.makefile("rb") as reader:
                yield reader
        except BaseException:
            self._discard_reply(ftp)
            raise

        try:
            ftp.voidresp()
        except ftplib.all_errors as e:
            raise TransferError(f"transfer of {path} did not complete: {e}", path=path) from e

    def _discard_reply(self, ftp: ftplib.FTP) -> None:
        """Consume the end-of-transfer reply after an aborted download."""
        try:
            ftp.getresp()
        except ftplib.all_errors as e:
            logger.debug(f"Discarded reply after aborted transfer: {e}")

    def delete(self, path: str) -> None:
        try:
            self._session().delete(path)
        except ftplib.all_errors as e:
            raise TransferError(f"error deleting file from FTP server {path}: {e}", path=path) from e
        logger.debug(f"Deleted file from FTP server: {path}")

    def close(self) -> None:
        """Send QUIT when possible, then close the control connection."""
        ftp, self._ftp = self._ftp, None
        if ftp is None:
            return
        try:
            ftp.quit()
        except ftplib.all_errors as e:
            logger.debug(f"QUIT failed for {self.connection_name}: {e}")
        finally:
            ftp.close()


class FTPClient(FTPSession):
    """FTP variant: direct control connection, listing reports files only."""

    protocol = Protocol.FTP

    def connect(self, connection: Connection) -> None:
        self.connection_name = connection.name
        logger.debug(
            f"Connecting to FTP: Host: {connection.host}, Port: {connection.port}, Username: {connection.username}"
        )
        ftp = ftplib.FTP(timeout=self.connect_timeout_s)
        try:
            ftp.connect(connection.host, connection.port)
        except ftplib.all_errors as e:
            ftp.close()
            raise TransferConnectionError(
                f"failed to dial FTP {connection.host}:{connection.port}: {e}", connection=connection.name
            ) from e
        self._login(ftp, connection)
        logger.debug(f"Connected to FTP: {connection.name}")

    def list_directory(self, path: str) -> list[RemoteEntry]:
        entries = self.list_entries(path)
        for entry in entries:
            if entry.is_file:
                logger.debug(f"File: {entry.name}, Size: {entry.size}")
        return [entry for entry in entries if entry.is_file]
