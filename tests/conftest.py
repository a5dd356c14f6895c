"""Shared fixtures: an in-memory transfer client, connections and ledgers."""

from __future__ import annotations

import io
import posixpath
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import pytest

from ftransfer.connections.base import TransferClient
from ftransfer.core.types import Connection, EntryKind, Protocol, RemoteEntry
from ftransfer.exceptions import ListingError, TransferConnectionError, TransferError
from ftransfer.sync.ledger import DownloadLedger


class FakeTransferClient(TransferClient):
    """
    Transfer client over a nested dict.

    ``tree`` maps names to ``bytes`` (files), ``dict`` (directories) or
    ``None`` (other entries such as symlinks).
    """

    protocol = Protocol.SFTP

    def __init__(
        self,
        tree: dict[str, Any],
        *,
        fail_connect: bool = False,
        fail_list: set[str] | None = None,
        fail_read: set[str] | None = None,
        fail_delete: set[str] | None = None,
        short_reads: dict[str, int] | None = None,
        on_delete: Callable[[str], None] | None = None,
    ):
        super().__init__()
        self.tree = tree
        self.fail_connect = fail_connect
        self.fail_list = fail_list or set()
        self.fail_read = fail_read or set()
        self.fail_delete = fail_delete or set()
        self.short_reads = short_reads or {}
        self.on_delete = on_delete
        self.connected = False
        self.closed = False
        self.listed: list[str] = []
        self.deleted: list[str] = []

    def connect(self, connection: Connection) -> None:
        self.connection_name = connection.name
        if self.fail_connect:
            raise TransferConnectionError("connection refused", connection=connection.name)
        self.connected = True

    @property
    def is_connected(self) -> bool:
        return self.connected and not self.closed

    def _node(self, path: str) -> Any:
        node: Any = self.tree
        for part in [p for p in path.strip("/").split("/") if p]:
            if not isinstance(node, dict) or part not in node:
                raise KeyError(path)
            node = node[part]
        return node

    def list_directory(self, path: str) -> list[RemoteEntry]:
        self.listed.append(path)
        if path in self.fail_list:
            raise ListingError(f"error reading directory {path}", path=path)
        try:
            node = self._node(path)
        except KeyError:
            raise ListingError(f"no such directory {path}", path=path) from None
        entries = []
        for name, value in node.items():
            if isinstance(value, dict):
                entries.append(RemoteEntry(name=name, size=0, kind=EntryKind.DIRECTORY))
            elif value is None:
                entries.append(RemoteEntry(name=name, size=0, kind=EntryKind.OTHER))
            else:
                entries.append(RemoteEntry(name=name, size=len(value), kind=EntryKind.FILE))
        return entries

    @contextmanager
    def open_for_read(self, path: str) -> Iterator[io.BytesIO]:
        if path in self.fail_read:
            raise TransferError(f"error opening remote file {path}", path=path)
        data = self._node(path)
        if path in self.short_reads:
            data = data[: self.short_reads[path]]
        yield io.BytesIO(data)

    def delete(self, path: str) -> None:
        if self.on_delete is not None:
            self.on_delete(path)
        if path in self.fail_delete:
            raise TransferError(f"permission denied deleting {path}", path=path)
        parent = self._node(posixpath.dirname(path))
        del parent[posixpath.basename(path)]
        self.deleted.append(path)

    def close(self) -> None:
        self.closed = True


def make_connection(**overrides: Any) -> Connection:
    values: dict[str, Any] = {
        "name": "srv1",
        "host": "127.0.0.1",
        "port": 22,
        "protocol": Protocol.SFTP,
        "username": "agent",
        "password": "secret",
        "remote_path": "/out",
        "max_depth": 1,
    }
    values.update(overrides)
    return Connection(**values)


@pytest.fixture
def connection() -> Connection:
    return make_connection()


@pytest.fixture
def ledger() -> Iterator[DownloadLedger]:
    led = DownloadLedger(":memory:")
    yield led
    led.close()
