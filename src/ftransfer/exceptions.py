"""
ftransfer exception hierarchy.

All domain-specific exceptions inherit from FtransferError, making it easy
to catch any agent error with a single base class while still allowing
fine-grained handling when needed.

Hierarchy::

    FtransferError
    ├── ConfigurationError        - config loading, parsing, validation
    ├── InitializationError       - startup orchestration failures
    ├── TransferConnectionError   - dial, handshake, authentication
    ├── TransferError             - remote read/delete of a single file
    │   └── ListingError          - remote directory listing
    └── LedgerError               - ledger read failures
        └── LedgerWriteError      - ledger insert failures (fatal to the process)
"""

from __future__ import annotations


class FtransferError(Exception):
    """Base exception for all ftransfer errors."""

    def __init__(self, message: str, *, details: dict | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


# --- Configuration -----------------------------------------------------------


class ConfigurationError(FtransferError):
    """Raised when configuration loading, parsing, or validation fails."""


class InitializationError(FtransferError):
    """Raised when startup fails (config, logging, ledger)."""

    def __init__(self, message: str, *, step: str | None = None) -> None:
        super().__init__(message, details={"step": step})
        self.step = step


# --- Transfers ---------------------------------------------------------------


class TransferConnectionError(FtransferError):
    """Raised when a remote server cannot be dialed or authenticated against."""

    def __init__(self, message: str, *, connection: str | None = None) -> None:
        super().__init__(message, details={"connection": connection})
        self.connection_name = connection


class TransferError(FtransferError):
    """Raised when reading or deleting a remote file fails."""

    def __init__(self, message: str, *, path: str | None = None) -> None:
        super().__init__(message, details={"path": path})
        self.path = path


class ListingError(TransferError):
    """Raised when a remote directory cannot be listed."""


# --- Ledger ------------------------------------------------------------------


class LedgerError(FtransferError):
    """Raised when the download ledger cannot be read."""


class LedgerWriteError(LedgerError):
    """Raised when a download record cannot be written.

    This is the one error the scheduler does not swallow: without the record
    a later pass cannot tell the file apart from one never processed.
    """
