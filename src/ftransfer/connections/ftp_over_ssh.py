"""
FTP over an SSH tunnel.

The SSH transport is established first; the FTP control connection and every
passive data connection are then opened as ``direct-tcpip`` channels through
it, so the FTP server only needs to be reachable from the SSH host.
"""

from __future__ import annotations

import ftplib
import socket
from typing import Any

import paramiko

from ftransfer.connections.ftp import FTPSession
from ftransfer.connections.ssh import open_ssh_transport
from ftransfer.core.types import Connection, Protocol, RemoteEntry
from ftransfer.exceptions import TransferConnectionError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.ftp_over_ssh")


class TunneledFTP(ftplib.FTP):
    """ftplib.FTP whose sockets are SSH channels instead of TCP connections."""

    def __init__(self, transport: paramiko.Transport, timeout: float = 5.0):
        super().__init__(timeout=timeout)
        self._transport = transport

    def _open_channel(self, host: str, port: int) -> paramiko.Channel:
        logger.debug(f"Dialing FTP over SSH: addr={host}:{port}")
        try:
            channel = self._transport.open_channel(
                "direct-tcpip", (host, port), ("127.0.0.1", 0), timeout=self.timeout
            )
        except paramiko.SSHException as e:
            # ftplib.all_errors covers OSError, so callers see the usual error family
            raise ConnectionError(f"failed to open tunnel to {host}:{port}: {e}") from e
        channel.settimeout(self.timeout)
        return channel

    def connect(self, host: str = "", port: int = 0, timeout: float = -999, source_address: Any = None) -> str:
        if host:
            self.host = host
        if port > 0:
            self.port = port
        if timeout != -999:
            self.timeout = timeout
        self.sock = self._open_channel(self.host, self.port)
        self.af = socket.AF_INET
        self.file = self.sock.makefile("r")
        self.welcome = self.getresp()
        return self.welcome

    def makepasv(self) -> tuple[str, int]:
        # The advertised address is resolved from the SSH host, so the tunnel
        # target replaces it unless the server is explicitly trusted.
        untrusted_host, port = ftplib.parse227(self.sendcmd("PASV"))
        host = untrusted_host if self.trust_server_pasv_ipv4_address else self.host
        return host, port

    def ntransfercmd(self, cmd: str, rest: Any = None) -> tuple[paramiko.Channel, int | None]:
        size = None
        host, port = self.makepasv()
        conn = self._open_channel(host, port)
        try:
            if rest is not None:
                self.sendcmd(f"REST {rest}")
            resp = self.sendcmd(cmd)
            # Some servers reply 2xx before the 1xx preliminary reply
            if resp[0] == "2":
                resp = self.getresp()
            if resp[0] != "1":
                raise ftplib.error_reply(resp)
        except BaseException:
            conn.close()
            raise
        if resp[:3] == "150":
            size = ftplib.parse150(resp)
        return conn, size

    def retrlines(self, cmd: str, callback: Any = None) -> str:
        # Channel.makefile takes no encoding argument; paramiko decodes text as UTF-8
        if callback is None:
            callback = ftplib.print_line
        self.sendcmd("TYPE A")
        with self.transfercmd(cmd) as conn, conn.makefile("r") as fp:
            while True:
                line = fp.readline(self.maxline + 1)
                if len(line) > self.maxline:
                    raise ftplib.Error(f"got more than {self.maxline} bytes")
                if not line:
                    break
                if line[-2:] == "\r\n":
                    line = line[:-2]
                elif line[-1:] == "\n":
                    line = line[:-1]
                callback(line)
        return self.voidresp()


class FTPOverSSHClient(FTPSession):
    """FTP-over-SSH variant: listing reports files, directories and other entries."""

    protocol = Protocol.FTP_OVER_SSH

    def __init__(self, connect_timeout_s: float = 5.0, **kwargs: Any):
        super().__init__(connect_timeout_s, **kwargs)
        self._transport: paramiko.Transport | None = None

    def connect(self, connection: Connection) -> None:
        self.connection_name = connection.name
        self._transport = open_ssh_transport(connection, timeout_s=self.connect_timeout_s)
        logger.info(f"Successfully connected to SSH: {connection.name}")

        ftp = TunneledFTP(self._transport, timeout=self.connect_timeout_s)
        try:
            ftp.connect(connection.tunnel_ftp_host, connection.tunnel_ftp_port)
        except ftplib.all_errors as e:
            ftp.close()
            raise TransferConnectionError(f"failed to dial FTP over SSH: {e}", connection=connection.name) from e
        self._login(ftp, connection)
        logger.debug(f"Connected to FTP over SSH: {connection.name}")

    def list_directory(self, path: str) -> list[RemoteEntry]:
        entries = self.list_entries(path)
        for entry in entries:
            logger.debug(f"{entry.kind.value.capitalize()}: {entry.name}, Size: {entry.size}")
        return entries

    def close(self) -> None:
        """Quit FTP first, then tear down the SSH transport."""
        try:
            super().close()
        finally:
            transport, self._transport = self._transport, None
            if transport is not None:
                transport.close()
