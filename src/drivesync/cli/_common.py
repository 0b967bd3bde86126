"""Shared helpers for CLI commands."""

from __future__ import annotations

from pathlib import Path

from drivesync.collaborators import LocalFolderDrive, MemoryIndex
from drivesync.config import SyncConfig
from drivesync.service import SyncService

# credential used against the in-process index when none is configured
LOCAL_API_KEY = "local-index"


def build_service(
    api_key: str | None = None,
    interval: float | None = None,
    normalize: bool = False,
) -> SyncService:
    """Service that mirrors local folders into an in-process index."""
    config = SyncConfig()
    if api_key:
        config.api_key = api_key
    elif not config.has_api_key:
        config.api_key = LOCAL_API_KEY
    if interval is not None and interval > 0:
        config.poll_interval = interval
    if normalize:
        config.normalize_order = True
    return SyncService(
        drive=LocalFolderDrive(), index=MemoryIndex(), config=config
    )


async def attach_folder(
    service: SyncService, folder: Path, name: str | None = None
) -> str:
    """Connect, create a client for ``folder`` and start polling it."""
    await service.connect_drive()
    client = await service.add_client(name or folder.resolve().name or "local")
    assert client is not None
    await service.set_folder_url(client.id, str(folder.resolve()))
    return client.id
