"""Data model for clients, their synced files and cycle status."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from drivesync.errors import SyncFailure

# summary shown while a file is being re-indexed
SYNCING_SUMMARY = "..."


class FileStatus(str, Enum):
    PENDING = "pending"
    SYNCING = "syncing"
    INDEXED = "indexed"
    ERROR = "error"


class SessionOutcome(str, Enum):
    COMMITTED = "committed"
    UNCHANGED = "unchanged"
    ABORTED = "aborted"
    DISCARDED = "discarded"


@dataclass(frozen=True)
class RemoteFile:
    """A file as reported by the drive for one fetch."""

    id: str
    content: str
    name: str | None = None


@dataclass(frozen=True)
class SyncedFile:
    """Locally tracked, indexable file with its lifecycle status."""

    id: str
    content: str
    summary: str = ""
    status: FileStatus = FileStatus.PENDING
    name: str | None = None

    @classmethod
    def placeholder(cls, remote: RemoteFile) -> SyncedFile:
        """Optimistic record written while the index catches up."""
        return cls(
            id=remote.id,
            content=remote.content,
            summary=SYNCING_SUMMARY,
            status=FileStatus.SYNCING,
            name=remote.name,
        )


@dataclass(frozen=True)
class Client:
    """A tenant whose remote folder is mirrored into a search index.

    Instances are immutable snapshots; the registry swaps whole records,
    so a reader never sees a partially updated ``files`` sequence.
    """

    id: str
    name: str
    api_key: str
    folder_url: str | None = None
    files: tuple[SyncedFile, ...] = ()
    # last committed snapshot, the baseline for change detection
    baseline: tuple[SyncedFile, ...] = ()

    def with_files(self, files: Any, commit: bool = False) -> Client:
        files = tuple(files)
        if commit:
            return replace(self, files=files, baseline=files)
        return replace(self, files=files)

    def with_folder(self, folder_url: str | None) -> Client:
        return replace(self, folder_url=folder_url)


@dataclass
class ClientSyncStatus:
    """Cycle status of the currently targeted client only."""

    is_syncing: bool = False
    last_error: str | None = None
    error: SyncFailure | None = None
    last_synced_at: str | None = None
    cycles: int = 0
    skipped_ticks: int = 0

    def clear_error(self) -> None:
        self.last_error = None
        self.error = None

    def record_failure(self, failure: SyncFailure) -> None:
        self.last_error = failure.message
        self.error = failure


@dataclass
class SyncSession:
    """One reconciliation attempt for one client."""

    client_id: str
    generation: int
    remote_files: list[RemoteFile] = field(default_factory=list)
    outcome: SessionOutcome | None = None
    error: SyncFailure | None = None


# ---------------------------------------------------------------------------
# Response models for the service read surface
# ---------------------------------------------------------------------------


class FileInfo(BaseModel):
    """A synced file as exposed to callers."""

    id: str
    name: str | None = None
    summary: str
    status: FileStatus


class ClientInfo(BaseModel):
    """A client without its secret api key."""

    id: str
    name: str
    folder_url: str | None = None
    file_count: int = Field(description="Number of tracked files")
    files: list[FileInfo] = Field(default_factory=list)

    @classmethod
    def from_client(cls, client: Client) -> ClientInfo:
        return cls(
            id=client.id,
            name=client.name,
            folder_url=client.folder_url,
            file_count=len(client.files),
            files=[
                FileInfo(
                    id=f.id, name=f.name, summary=f.summary, status=f.status
                )
                for f in client.files
            ],
        )


class SyncStatusReport(BaseModel):
    """Snapshot of the service's sync state."""

    drive_connected: bool
    has_api_key: bool = Field(description="Whether an index key is configured")
    selected_client_id: str | None = None
    active: bool = Field(description="Whether the scheduler is polling")
    is_syncing: bool
    last_error: str | None = None
    error_kind: str | None = None
    last_synced_at: str | None = None
    cycles: int = 0
    poll_interval: float
