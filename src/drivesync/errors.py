"""Error taxonomy for sync cycles.

Every failure a cycle can hit is wrapped in a ``DriveSyncError`` subclass
carrying a ``kind`` tag, a display message and the original cause. The
scheduler stores a ``SyncFailure`` snapshot for tests and telemetry and
surfaces only ``message`` to callers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred during sync."


class ErrorKind(str, Enum):
    CONNECTION = "connection"
    FETCH = "fetch"
    SYNC = "sync"
    QUERY = "query"
    UNKNOWN = "unknown"


class DriveSyncError(Exception):
    """Base class for tagged sync errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self, message: str | None = None, cause: BaseException | None = None
    ) -> None:
        if not message:
            message = describe_error(cause) if cause else UNKNOWN_ERROR_MESSAGE
        super().__init__(message)
        self.message = message
        self.cause = cause

    def to_failure(self) -> SyncFailure:
        return SyncFailure(
            kind=self.kind,
            message=self.message,
            cause=type(self.cause).__name__ if self.cause else None,
        )


class DriveConnectionError(DriveSyncError):
    """The drive collaborator refused or failed to connect."""

    kind = ErrorKind.CONNECTION


class FetchError(DriveSyncError):
    """Listing the remote folder failed mid-cycle."""

    kind = ErrorKind.FETCH


class IndexSyncError(DriveSyncError):
    """The index collaborator failed to reconcile a client's files."""

    kind = ErrorKind.SYNC


class QueryError(DriveSyncError):
    kind = ErrorKind.QUERY


class UnknownSyncError(DriveSyncError):
    kind = ErrorKind.UNKNOWN


@dataclass(frozen=True)
class SyncFailure:
    """Structured record of the last failed cycle."""

    kind: ErrorKind
    message: str
    cause: str | None = None


def describe_error(exc: BaseException | None) -> str:
    """Reduce any exception to a human readable message."""
    if exc is None:
        return UNKNOWN_ERROR_MESSAGE
    if isinstance(exc, DriveSyncError):
        return exc.message
    if isinstance(exc, TimeoutError):
        return str(exc) or "operation timed out"
    text = str(exc)
    return text if text else UNKNOWN_ERROR_MESSAGE


def as_sync_error(exc: BaseException) -> DriveSyncError:
    """Normalize an arbitrary exception into the taxonomy."""
    if isinstance(exc, DriveSyncError):
        return exc
    return UnknownSyncError(describe_error(exc), cause=exc)
