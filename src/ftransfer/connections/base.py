"""
Abstract transfer client shared by the SFTP, FTP and FTP-over-SSH variants.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from typing import Any, BinaryIO

from ftransfer.core.types import Connection, Protocol, RemoteEntry
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.base")

# Bounded dial/handshake timeout for every protocol
CONNECT_TIMEOUT_S = 5.0


class TransferClient(ABC):
    """
    One live session against a remote server.

    Lifecycle::

        with create_client(connection) as client:
            client.connect(connection)
            for entry in client.list_directory(path):
                ...

    Leaving the ``with`` block always calls :meth:`close`, which releases every
    transport handle even when ``connect`` or a later operation failed.

    Errors:
        - ``connect`` raises TransferConnectionError
        - ``list_directory`` raises ListingError
        - ``open_for_read`` / ``delete`` raise TransferError
    """

    protocol: Protocol

    def __init__(self, connect_timeout_s: float = CONNECT_TIMEOUT_S):
        self.connect_timeout_s = connect_timeout_s
        self.connection_name: str | None = None

    @abstractmethod
    def connect(self, connection: Connection) -> None:
        """Dial and authenticate against the server described by ``connection``."""

    @abstractmethod
    def list_directory(self, path: str) -> list[RemoteEntry]:
        """List one remote directory (non-recursive)."""

    @abstractmethod
    def open_for_read(self, path: str) -> AbstractContextManager[BinaryIO]:
        """Open a remote file as a binary stream; use as a context manager."""

    @abstractmethod
    def delete(self, path: str) -> None:
        """Delete one remote file."""

    @abstractmethod
    def close(self) -> None:
        """Release all handles. Safe to call repeatedly and after failures."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Whether the session currently holds an open transport."""

    def __enter__(self) -> TransferClient:
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        """Context manager exit - closes the session."""
        try:
            self.close()
        except Exception as e:
            # Don't override the original exception if one occurred
            if exc_type is None:
                raise
            logger.warning(f"Error closing {self!r} during context exit: {e}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(connection='{self.connection_name}')"
