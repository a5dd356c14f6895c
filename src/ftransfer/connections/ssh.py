"""
SSH transport setup shared by the SFTP and FTP-over-SSH clients.
"""

from __future__ import annotations

import socket

import paramiko

from ftransfer.core.types import Connection
from ftransfer.exceptions import TransferConnectionError
from ftransfer.utils.logging import get_logger

logger = get_logger("ftransfer.connections.ssh")

_KEY_CLASSES: tuple[type[paramiko.PKey], ...] = (
    paramiko.RSAKey,
    paramiko.ECDSAKey,
    paramiko.Ed25519Key,
)


def load_private_key(path: str, passphrase: str | None = None) -> paramiko.PKey:
    """
    Load a private key file, trying the common key types in turn.

    Raises:
        TransferConnectionError: if the file is unreadable or no key type parses it
    """
    last_error: Exception | None = None
    for key_cls in _KEY_CLASSES:
        try:
            return key_cls.from_private_key_file(path, password=passphrase)
        except paramiko.PasswordRequiredException as e:
            raise TransferConnectionError(f"private key {path} is encrypted: {e}") from e
        except (paramiko.SSHException, ValueError) as e:
            last_error = e
        except OSError as e:
            raise TransferConnectionError(f"failed to read SSH key file {path}: {e}") from e
    raise TransferConnectionError(f"failed to parse SSH key {path}: {last_error}")


def open_ssh_transport(connection: Connection, timeout_s: float = 5.0) -> paramiko.Transport:
    """
    Dial and authenticate an SSH transport for ``connection``.

    The private key is used when configured, the password otherwise. The server
    host key is not verified.

    Returns:
        An authenticated paramiko.Transport; the caller owns closing it.
    """
    pkey = None
    if connection.private_key_path:
        logger.info(f"Using SSH key for authentication: {connection.private_key_path}")
        pkey = load_private_key(connection.private_key_path)
    else:
        logger.info(f"Using password for authentication: {connection.username}")

    logger.debug(f"Connecting to SSH: Host: {connection.host}, Port: {connection.port}, Username: {connection.username}")
    try:
        sock = socket.create_connection((connection.host, connection.port), timeout=timeout_s)
    except OSError as e:
        raise TransferConnectionError(
            f"failed to dial SSH {connection.host}:{connection.port}: {e}", connection=connection.name
        ) from e

    transport = paramiko.Transport(sock)
    transport.banner_timeout = timeout_s
    transport.auth_timeout = timeout_s
    transport.handshake_timeout = timeout_s

    try:
        # No hostkey argument: the server key is accepted as presented
        if pkey is not None:
            transport.connect(username=connection.username, pkey=pkey)
        else:
            transport.connect(username=connection.username, password=connection.password)
    except (paramiko.SSHException, OSError, EOFError) as e:
        transport.close()
        raise TransferConnectionError(
            f"failed to authenticate SSH {connection.host}:{connection.port}: {e}", connection=connection.name
        ) from e

    if not transport.is_authenticated():
        transport.close()
        raise TransferConnectionError(
            f"SSH authentication rejected for {connection.username}@{connection.host}", connection=connection.name
        )

    logger.debug(f"Connected to SSH: {connection.name} ({transport.remote_version})")
    return transport
