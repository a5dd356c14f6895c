"""
Transfer client dispatch and the pre-flight reachability probe.
"""

from __future__ import annotations

import dataclasses
import socket

from ftransfer.connections.base import TransferClient
from ftransfer.connections.ftp import FTPClient
from ftransfer.connections.ftp_over_ssh import FTPOverSSHClient
from ftransfer.connections.sftp import SFTPClient
from ftransfer.core.types import Connection, Protocol
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.manager")

CLIENT_TYPES: dict[Protocol, type[TransferClient]] = {
    Protocol.SFTP: SFTPClient,
    Protocol.FTP: FTPClient,
    Protocol.FTP_OVER_SSH: FTPOverSSHClient,
}


def create_client(connection: Connection) -> TransferClient:
    """
    Build an unconnected transfer client for the connection's protocol.

    Unknown protocols are rejected when the configuration is parsed, so a
    KeyError here means a Connection was built by hand with a bad value.
    """
    return CLIENT_TYPES[Protocol(connection.protocol)]()


def check_host_port(host: str, port: int, timeout_s: float = 2.0) -> bool:
    """Whether a TCP connection to host:port can be opened within the timeout."""
    try:
        with socket.create_connection((host, port), timeout=timeout_s):
            return True
    except OSError:
        return False


def probe_connections(connections: list[Connection], timeout_s: float = 2.0) -> list[Connection]:
    """
    Annotate each connection with a one-shot reachability result.

    The result is informational only: unreachable connections are still
    scheduled, since the next cycle may find them up.
    """
    probed = []
    for conn in connections:
        reachable = check_host_port(conn.host, conn.port, timeout_s)
        if reachable:
            logger.info(f"Connection to {conn.host}:{conn.port} is available")
        else:
            logger.error(f"Connection to {conn.host}:{conn.port} is not available")
        probed.append(dataclasses.replace(conn, reachable=reachable))
    return probed
