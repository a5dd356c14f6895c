"""
Transfer clients.

One TransferClient contract over SFTP, FTP and FTP tunneled through SSH.
"""

from ftransfer.connections.base import TransferClient
from ftransfer.connections.ftp import FTPClient
from ftransfer.connections.ftp_over_ssh import FTPOverSSHClient
from ftransfer.connections.manager import check_host_port, create_client, probe_connections
from ftransfer.connections.sftp import SFTPClient

__all__ = [
    "TransferClient",
    "SFTPClient",
    "FTPClient",
    "FTPOverSSHClient",
    "create_client",
    "check_host_port",
    "probe_connections",
]
