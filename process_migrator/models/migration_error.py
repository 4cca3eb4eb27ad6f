"""Defines the error taxonomy for the export/import process.

Every known error carries an :class:`ErrorKind`. The orchestrator dispatches on
the kind returned by :func:`classify_error` instead of chains of ``isinstance``
checks, so repository-layer failures (``requests`` and socket errors) map onto
the same closed set of kinds as our own exceptions.
"""

import errno
import socket
from enum import Enum

import requests

from process_migrator.clients.exceptions import ClientConnectionError


class ErrorKind(Enum):
    """Closed set of error kinds reported by a run."""

    CANCELLATION = "cancellation"
    VALIDATION = "validation"
    EXPORT = "export"
    IMPORT = "import"
    TRANSIENT = "transient"
    CONFIGURATION = "configuration"
    UNKNOWN = "unknown"


TRANSIENT_ERRNOS = frozenset({errno.ECONNRESET, errno.ECONNREFUSED, errno.ETIMEDOUT, errno.ECONNABORTED})


class MigrationError(Exception):
    """Base exception for known process migration errors.

    Should be used when a component encounters an error that prevents it from
    continuing execution. Subclasses set ``kind``.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN
    prefix: str = ""

    def __init__(self, message: str, *args: object) -> None:
        """Initialize the exception with a descriptive message.

        Args:
            message: Detailed error message
            *args: Additional positional arguments for Exception

        """
        full_message = f"{self.prefix}{message}" if self.prefix else message
        super().__init__(full_message, *args)
        self.message = full_message


class CancellationError(MigrationError):
    """Raised when the user cancels the operation."""

    kind = ErrorKind.CANCELLATION

    def __init__(self, message: str = "Process import/export cancelled by user input.") -> None:
        super().__init__(message)


class ProcessValidationError(MigrationError):
    """Raised by pre-import validation. Nothing was created on the target."""

    kind = ErrorKind.VALIDATION
    prefix = "Process import validation failed. "


class ProcessImportError(MigrationError):
    """Raised when a replay step fails. Partial artifacts may exist on the target."""

    kind = ErrorKind.IMPORT
    prefix = "Import failed, see log file for details. "


class ProcessExportError(MigrationError):
    """Raised when reading the process from the source account fails."""

    kind = ErrorKind.EXPORT
    prefix = "Export failed, see log file for details. "


class ConfigurationError(MigrationError):
    """Raised when the configuration file or command line is invalid."""

    kind = ErrorKind.CONFIGURATION


class RetryExhaustedError(MigrationError):
    """Raised when a transient failure persists after all retries."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, label: str, attempts: int, last_error: BaseException) -> None:
        super().__init__(f"Step '{label}' failed after {attempts} attempts: {last_error}")
        self.label = label
        self.attempts = attempts
        self.last_error = last_error


def is_transient_error(error: BaseException) -> bool:
    """Return True for connection reset/refused/timeout failures."""
    if isinstance(error, ClientConnectionError):
        return True
    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return True
    if isinstance(error, (ConnectionResetError, ConnectionRefusedError, ConnectionAbortedError, TimeoutError, socket.timeout)):
        return True
    if isinstance(error, OSError) and error.errno in TRANSIENT_ERRNOS:
        return True
    return False


def classify_error(error: BaseException) -> ErrorKind:
    """Map any exception onto an :class:`ErrorKind`."""
    if isinstance(error, MigrationError):
        return error.kind
    if isinstance(error, KeyboardInterrupt):
        return ErrorKind.CANCELLATION
    if is_transient_error(error):
        return ErrorKind.TRANSIENT
    return ErrorKind.UNKNOWN
