from drivesync.collaborators import (
    DriveCollaborator,
    IndexCollaborator,
    LocalFolderDrive,
    MemoryDrive,
    MemoryIndex,
)
from drivesync.config import SyncConfig
from drivesync.engine import ReconciliationEngine
from drivesync.errors import (
    DriveConnectionError,
    DriveSyncError,
    ErrorKind,
    FetchError,
    IndexSyncError,
    QueryError,
    SyncFailure,
    UnknownSyncError,
)
from drivesync.fingerprint import fingerprint, has_changed
from drivesync.models import (
    Client,
    ClientSyncStatus,
    FileStatus,
    RemoteFile,
    SessionOutcome,
    SyncedFile,
    SyncSession,
)
from drivesync.registry import ClientRegistry
from drivesync.scheduler import SyncScheduler, SyncTarget
from drivesync.service import SyncService

__all__ = [
    "Client",
    "ClientRegistry",
    "ClientSyncStatus",
    "DriveCollaborator",
    "DriveConnectionError",
    "DriveSyncError",
    "ErrorKind",
    "FetchError",
    "FileStatus",
    "IndexCollaborator",
    "IndexSyncError",
    "LocalFolderDrive",
    "MemoryDrive",
    "MemoryIndex",
    "QueryError",
    "ReconciliationEngine",
    "RemoteFile",
    "SessionOutcome",
    "SyncConfig",
    "SyncFailure",
    "SyncScheduler",
    "SyncService",
    "SyncSession",
    "SyncTarget",
    "SyncedFile",
    "UnknownSyncError",
    "fingerprint",
    "has_changed",
]
