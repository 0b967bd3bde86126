"""Reconciliation engine: one sync cycle for one client.

A cycle runs strictly in order:

1. fetch the remote snapshot from the drive
2. compare it with the last committed snapshot (fingerprint)
3. optimistically replace the files with ``syncing`` placeholders
4. ask the index to reconcile and return authoritative records
5. commit those records

Every write goes through the registry with a guard so that a cycle whose
target went stale while it was suspended never touches client state.
Failures never raise out of ``reconcile``; they are recorded on the
returned ``SyncSession``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from drivesync.collaborators import DriveCollaborator, IndexCollaborator
from drivesync.errors import (
    DriveSyncError,
    FetchError,
    IndexSyncError,
    UnknownSyncError,
    describe_error,
)
from drivesync.fingerprint import has_changed
from drivesync.logging_config import get_logger
from drivesync.models import SessionOutcome, SyncedFile, SyncSession
from drivesync.registry import ClientRegistry

logger = get_logger("engine")

T = TypeVar("T")


def _always_current() -> bool:
    return True


class ReconciliationEngine:
    """Executes reconciliation cycles against the registry."""

    def __init__(
        self,
        registry: ClientRegistry,
        drive: DriveCollaborator,
        index: IndexCollaborator,
        call_timeout: float | None = None,
        normalize_order: bool = False,
    ) -> None:
        self.registry = registry
        self.drive = drive
        self.index = index
        self.call_timeout = call_timeout
        self.normalize_order = normalize_order

    async def _call(self, what: str, coro: Awaitable[T]) -> T:
        if self.call_timeout is None:
            return await coro
        try:
            return await asyncio.wait_for(coro, timeout=self.call_timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(
                f"{what} timed out after {self.call_timeout:g}s"
            ) from None

    async def reconcile(
        self,
        client_id: str,
        api_key: str,
        generation: int = 0,
        is_current: Callable[[], bool] = _always_current,
    ) -> SyncSession:
        """Run one cycle for ``client_id``.

        Args:
            client_id: Target client
            api_key: Index credential passed to the index collaborator
            generation: Scheduler generation the cycle belongs to
            is_current: Evaluated before every write; when it returns False
                the cycle's results are dropped

        Returns:
            The session with its outcome and, for aborted cycles, the error
        """
        session = SyncSession(client_id=client_id, generation=generation)
        client = self.registry.get(client_id)
        if client is None or not client.folder_url:
            return self._abort(
                session,
                UnknownSyncError(f"client {client_id} has no folder to sync"),
            )

        logger.debug("checking for updates for %s...", client.name)

        # 1. fetch
        try:
            remote = await self._call(
                "drive listing", self.drive.list_files(client.folder_url)
            )
        except Exception as e:
            if not is_current():
                return self._discard(session, "after fetch failure")
            return self._abort(session, FetchError(describe_error(e), cause=e))
        session.remote_files = list(remote)

        if not is_current():
            return self._discard(session, "after fetch")

        # 2. compare against the last committed snapshot
        stored = self.registry.get(client_id)
        baseline = stored.baseline if stored is not None else ()
        if not has_changed(
            baseline, session.remote_files, self.normalize_order
        ):
            logger.debug("no changes detected for %s", client.name)
            session.outcome = SessionOutcome.UNCHANGED
            return session

        logger.info(
            "change detected for %s: %d remote file(s), starting full sync",
            client.name,
            len(session.remote_files),
        )

        # 3. optimistic placeholders
        placeholders = [
            SyncedFile.placeholder(rf) for rf in session.remote_files
        ]
        if await self.registry.replace_files(
            client_id, placeholders, guard=is_current
        ) is None:
            return self._discard(session, "before placeholder write")

        # 4. index reconcile; placeholders stay in place on failure
        try:
            indexed = await self._call(
                "index sync",
                self.index.sync_files(
                    client, list(session.remote_files), api_key
                ),
            )
        except Exception as e:
            if not is_current():
                return self._discard(session, "after index failure")
            return self._abort(
                session, IndexSyncError(describe_error(e), cause=e)
            )

        # 5. commit
        if await self.registry.replace_files(
            client_id, indexed, guard=is_current, commit=True
        ) is None:
            return self._discard(session, "before commit")

        session.outcome = SessionOutcome.COMMITTED
        logger.info(
            "sync successful for %s: %d file(s) committed",
            client.name,
            len(indexed),
        )
        return session

    def _abort(
        self, session: SyncSession, error: DriveSyncError
    ) -> SyncSession:
        session.outcome = SessionOutcome.ABORTED
        session.error = error.to_failure()
        logger.warning(
            "sync failed for %s (%s): %s",
            session.client_id,
            error.kind.value,
            error.message,
        )
        return session

    def _discard(self, session: SyncSession, where: str) -> SyncSession:
        session.outcome = SessionOutcome.DISCARDED
        logger.debug(
            "discarding stale cycle for %s (generation %d) %s",
            session.client_id,
            session.generation,
            where,
        )
        return session

