"""Sync service facade.

Holds the client registry, the collaborators, the index credential and
drive connectivity, and re-evaluates the scheduler's activation inputs
after every change. This is the surface a UI or the CLI drives.

Usage:
    service = SyncService(drive=LocalFolderDrive(), index=MemoryIndex())
    await service.connect_drive()
    service.set_api_key("secret")
    client = await service.add_client("Acme")
    await service.set_folder_url(client.id, "/srv/acme")
    answer = await service.query("quarterly report")
    await service.stop()
"""

from __future__ import annotations

import asyncio

from drivesync.collaborators import DriveCollaborator, IndexCollaborator
from drivesync.config import SyncConfig
from drivesync.engine import ReconciliationEngine
from drivesync.errors import DriveConnectionError, QueryError, describe_error
from drivesync.logging_config import get_logger
from drivesync.models import Client, ClientInfo, SyncStatusReport
from drivesync.registry import ClientRegistry
from drivesync.scheduler import SyncScheduler, SyncTarget

logger = get_logger("service")

NO_CLIENT_SELECTED = "No client selected."


class SyncService:
    """Owns the sync state for one process."""

    def __init__(
        self,
        drive: DriveCollaborator,
        index: IndexCollaborator,
        config: SyncConfig | None = None,
        registry: ClientRegistry | None = None,
    ) -> None:
        self.config = config or SyncConfig()
        self.drive = drive
        self.index = index
        self.registry = registry or ClientRegistry()
        self.engine = ReconciliationEngine(
            self.registry,
            drive,
            index,
            call_timeout=self.config.call_timeout,
            normalize_order=self.config.normalize_order,
        )
        self.scheduler = SyncScheduler(
            self.registry,
            self.engine,
            poll_interval=self.config.poll_interval,
        )
        self._api_key = self.config.api_key
        self._drive_connected = False
        self._selected_client_id: str | None = None

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def api_key(self) -> str:
        return self._api_key

    @property
    def drive_connected(self) -> bool:
        return self._drive_connected

    @property
    def selected_client(self) -> Client | None:
        return self.registry.get(self._selected_client_id)

    # -------------------------------------------------------------------------
    # Settings and clients
    # -------------------------------------------------------------------------

    async def connect_drive(self) -> bool:
        """Connect the drive. No automatic retry on failure.

        Raises:
            DriveConnectionError: the drive raised while connecting
        """
        try:
            connected = bool(await self.drive.connect())
        except Exception as e:
            self._drive_connected = False
            self._refresh()
            raise DriveConnectionError(describe_error(e), cause=e) from e

        self._drive_connected = connected
        if connected:
            logger.info("drive connected")
        else:
            logger.warning("drive refused the connection")
        self._refresh()
        return connected

    def set_api_key(self, api_key: str) -> None:
        self._api_key = api_key
        self._refresh()

    async def add_client(self, name: str) -> Client | None:
        """Create a client and select it. Blank names are ignored."""
        if not name.strip():
            return None
        client = await self.registry.add(name)
        self._selected_client_id = client.id
        self._refresh()
        return client

    def select_client(self, client_id: str | None) -> None:
        self._selected_client_id = client_id
        self._refresh()

    async def set_folder_url(self, client_id: str, folder_url: str) -> Client:
        client = await self.registry.set_folder(
            client_id, folder_url.strip() or None
        )
        self._refresh()
        return client

    async def remove_client(self, client_id: str) -> bool:
        removed = await self.registry.remove(client_id)
        if removed is not None and client_id == self._selected_client_id:
            self._selected_client_id = None
        self._refresh()
        return removed is not None

    def clients(self) -> list[ClientInfo]:
        return [ClientInfo.from_client(c) for c in self.registry.clients()]

    # -------------------------------------------------------------------------
    # Query gateway
    # -------------------------------------------------------------------------

    async def query(self, text: str) -> str:
        """Ask the index about the selected client's files.

        Raises:
            QueryError: the index collaborator failed
        """
        client = self.selected_client
        if client is None:
            return NO_CLIENT_SELECTED

        timeout = self.config.call_timeout
        try:
            if timeout is None:
                return await self.index.query(client, text, self._api_key)
            return await asyncio.wait_for(
                self.index.query(client, text, self._api_key), timeout=timeout
            )
        except Exception as e:
            raise QueryError(describe_error(e), cause=e) from e

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def _target(self) -> SyncTarget | None:
        client = self.selected_client
        if (
            client is None
            or not client.folder_url
            or not self._drive_connected
            or not self._api_key.strip()
        ):
            return None
        return SyncTarget(
            client_id=client.id,
            folder_url=client.folder_url,
            api_key=self._api_key,
        )

    def _refresh(self) -> None:
        self.scheduler.refresh(self._target())

    async def start(self) -> None:
        """Connect the drive if needed and start polling."""
        if not self._drive_connected:
            await self.connect_drive()
        else:
            self._refresh()

    async def stop(self) -> None:
        await self.scheduler.stop()

    def status(self) -> SyncStatusReport:
        st = self.scheduler.status
        return SyncStatusReport(
            drive_connected=self._drive_connected,
            has_api_key=bool(self._api_key.strip()),
            selected_client_id=self._selected_client_id,
            active=self.scheduler.active,
            is_syncing=st.is_syncing,
            last_error=st.last_error,
            error_kind=st.error.kind.value if st.error else None,
            last_synced_at=st.last_synced_at,
            cycles=st.cycles,
            poll_interval=self.scheduler.poll_interval,
        )
