"""Process-wide client registry.

The registry is the only shared mutable state. Clients are immutable
records; every write swaps a whole record under an asyncio lock, so a
concurrent reader sees either the old ``files`` sequence or the new one.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from collections.abc import Callable, Iterable

from drivesync.logging_config import get_logger
from drivesync.models import Client, SyncedFile

logger = get_logger("registry")


class ClientNotFoundError(KeyError):
    pass


def new_client_id(existing: Iterable[str] = ()) -> str:
    """Derive a ``client_<epoch-ms>`` id, suffixing on collision."""
    taken = set(existing)
    base = f"client_{int(time.time() * 1000)}"
    candidate = base
    n = 1
    while candidate in taken:
        candidate = f"{base}_{n}"
        n += 1
    return candidate


def new_api_key() -> str:
    return f"key_{uuid.uuid4()}"


class ClientRegistry:
    """Ordered mapping of client id to Client."""

    def __init__(self) -> None:
        self._clients: dict[str, Client] = {}
        self._lock = asyncio.Lock()

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    def __len__(self) -> int:
        return len(self._clients)

    def get(self, client_id: str | None) -> Client | None:
        if client_id is None:
            return None
        return self._clients.get(client_id)

    def require(self, client_id: str) -> Client:
        client = self._clients.get(client_id)
        if client is None:
            raise ClientNotFoundError(client_id)
        return client

    def clients(self) -> list[Client]:
        return list(self._clients.values())

    async def add(self, name: str) -> Client:
        async with self._lock:
            client = Client(
                id=new_client_id(self._clients),
                name=name,
                api_key=new_api_key(),
            )
            self._clients[client.id] = client
        logger.info("added client %s (%s)", client.id, name)
        return client

    async def put(self, client: Client) -> None:
        async with self._lock:
            self._clients[client.id] = client

    async def set_folder(
        self, client_id: str, folder_url: str | None
    ) -> Client:
        async with self._lock:
            client = self.require(client_id).with_folder(folder_url)
            self._clients[client_id] = client
        logger.info("client %s folder set to %s", client_id, folder_url)
        return client

    async def replace_files(
        self,
        client_id: str,
        files: Iterable[SyncedFile],
        guard: Callable[[], bool] | None = None,
        commit: bool = False,
    ) -> Client | None:
        """Swap a client's whole file sequence.

        ``commit`` also moves the change-detection baseline to ``files``;
        optimistic writes leave the baseline at the last committed snapshot.

        When ``guard`` is given it is evaluated under the lock and the write
        is skipped (returning None) unless it holds. A client that was
        removed from the registry is never recreated.
        """
        async with self._lock:
            current = self._clients.get(client_id)
            if current is None or (guard is not None and not guard()):
                return None
            client = current.with_files(files, commit=commit)
            self._clients[client_id] = client
        return client

    async def remove(self, client_id: str) -> Client | None:
        async with self._lock:
            client = self._clients.pop(client_id, None)
        if client is not None:
            logger.info("removed client %s", client_id)
        return client
