"""
SFTP transfer client.

paramiko SFTP session over an authenticated SSH transport.
"""

from __future__ import annotations

import stat
from collections.abc import Iterator
from contextlib import contextmanager
from typing import BinaryIO

import paramiko

from ftransfer.connections.base import TransferClient
from ftransfer.connections.ssh import open_ssh_transport
from ftransfer.core.types import Connection, EntryKind, Protocol, RemoteEntry
from ftransfer.exceptions import ListingError, TransferConnectionError, TransferError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.sftp")


class SFTPClient(TransferClient):
    """SFTP variant: lists files and directories, reads and deletes over SFTP."""

    protocol = Protocol.SFTP

    def __init__(self, connect_timeout_s: float = 5.0):
        super().__init__(connect_timeout_s)
        self._transport: paramiko.Transport | None = None
        self._client: paramiko.SFTPClient | None = None

    def connect(self, connection: Connection) -> None:
        self.connection_name = connection.name
        transport = open_ssh_transport(connection, timeout_s=self.connect_timeout_s)
        try:
            client = paramiko.SFTPClient.from_transport(transport)
        except (paramiko.SSHException, OSError, EOFError) as e:
            transport.close()
            raise TransferConnectionError(
                f"failed to create SFTP client for {connection.name}: {e}", connection=connection.name
            ) from e
        if client is None:
            transport.close()
            raise TransferConnectionError(
                f"SFTP subsystem unavailable on {connection.host}:{connection.port}", connection=connection.name
            )

        self._transport = transport
        self._client = client
        logger.debug(f"Connected to SFTP: {connection.name} and version: {transport.remote_version}")

    @property
    def is_connected(self) -> bool:
        return self._client is not None

    def _sftp(self) -> paramiko.SFTPClient:
        if self._client is None:
            raise TransferError(f"{self!r} is not connected")
        return self._client

    def list_directory(self, path: str) -> list[RemoteEntry]:
        try:
            attrs = self._sftp().listdir_attr(path)
        except (OSError, ValueError, paramiko.SSHException) as e:
            raise ListingError(f"error reading directory {path}: {e}", path=path) from e

        entries = []
        for attr in attrs:
            mode = attr.st_mode or 0
            if stat.S_ISDIR(mode):
                kind = EntryKind.DIRECTORY
            elif stat.S_ISREG(mode):
                kind = EntryKind.FILE
            else:
                kind = EntryKind.OTHER
            entries.append(RemoteEntry(name=attr.filename, size=int(attr.st_size or 0), kind=kind))
        return entries

    @contextmanager
    def open_for_read(self, path: str) -> Iterator[BinaryIO]:
        try:
            remote = self._sftp().open(path, "rb")
        except (OSError, paramiko.SSHException) as e:
            raise TransferError(f"error opening remote file {path}: {e}", path=path) from e
        with remote:
            remote.prefetch()
            yield remote

    def delete(self, path: str) -> None:
        try:
            self._sftp().remove(path)
        except (OSError, paramiko.SSHException) as e:
            raise TransferError(f"error deleting file from SFTP server {path}: {e}", path=path) from e
        logger.debug(f"Deleted file from server: {path}")

    def close(self) -> None:
        """Close SFTP client + underlying transport."""
        try:
            if self._client is not None:
                self._client.close()
        finally:
            self._client = None
            try:
                if self._transport is not None:
                    self._transport.close()
            finally:
                self._transport = None
