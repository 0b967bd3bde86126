"""Polling scheduler for the currently targeted client.

The scheduler owns a background timer task and a generation counter.
Every change of target, credential, connectivity or folder bumps the
generation; a cycle only applies its results while its generation is
still the current one. Cycles already suspended in a collaborator call
are left to finish and their results are dropped.

Usage:
    scheduler = SyncScheduler(registry, engine, poll_interval=5.0)
    scheduler.refresh(SyncTarget("client_1", "drive://folder", "key"))
    # ... later ...
    await scheduler.stop()
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime, timezone

from drivesync.config import DEFAULT_POLL_INTERVAL
from drivesync.engine import ReconciliationEngine
from drivesync.errors import as_sync_error
from drivesync.logging_config import get_logger
from drivesync.models import ClientSyncStatus, SessionOutcome, SyncSession
from drivesync.registry import ClientRegistry

logger = get_logger("scheduler")


@dataclass(frozen=True)
class SyncTarget:
    """Inputs that activate polling. Any change restarts the scheduler."""

    client_id: str
    folder_url: str
    api_key: str


class SyncScheduler:
    """Single-flight periodic reconciliation for one target client."""

    def __init__(
        self,
        registry: ClientRegistry,
        engine: ReconciliationEngine,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        status: ClientSyncStatus | None = None,
    ) -> None:
        self.registry = registry
        self.engine = engine
        self.poll_interval = poll_interval
        self.status = status or ClientSyncStatus()

        self._target: SyncTarget | None = None
        self._generation = 0
        self._timer_task: asyncio.Task | None = None
        self._stop_event = asyncio.Event()
        # outstanding cycle per client id, and the generation it belongs to
        self._in_flight: dict[str, asyncio.Task] = {}
        self._in_flight_generation: dict[str, int] = {}
        # the current generation's first tick was skipped behind a stale cycle
        self._pending_tick = False

    @property
    def target(self) -> SyncTarget | None:
        return self._target

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def active(self) -> bool:
        return self._timer_task is not None and not self._timer_task.done()

    def is_running(self, client_id: str) -> bool:
        task = self._in_flight.get(client_id)
        return task is not None and not task.done()

    def is_current(self, client_id: str, generation: int) -> bool:
        """Whether a cycle may still write client state."""
        target = self._target
        return (
            generation == self._generation
            and target is not None
            and target.client_id == client_id
            and client_id in self.registry
        )

    def refresh(self, target: SyncTarget | None) -> None:
        """Apply new activation inputs.

        ``None`` means a precondition is missing and polling stops.
        Re-applying the current target is a no-op.
        """
        if target == self._target and (target is None or self.active):
            return

        self._cancel_timer()
        self._generation += 1
        self._target = target
        self._pending_tick = False
        self.status.is_syncing = False

        if target is None:
            logger.debug("scheduler idle (generation %d)", self._generation)
            return

        logger.info(
            "polling %s every %.1fs (generation %d)",
            target.client_id,
            self.poll_interval,
            self._generation,
        )
        self._stop_event.clear()
        self.tick()
        self._timer_task = asyncio.create_task(
            self._timer_loop(self._generation), name="sync-scheduler"
        )

    def tick(self) -> asyncio.Task | None:
        """Start a cycle for the target unless one is still outstanding."""
        target = self._target
        if target is None:
            return None

        if self.is_running(target.client_id):
            self.status.skipped_ticks += 1
            if (
                self._in_flight_generation.get(target.client_id)
                != self._generation
            ):
                self._pending_tick = True
            logger.debug(
                "cycle still running for %s, skipping tick", target.client_id
            )
            return None

        task = asyncio.create_task(
            self._run_cycle(target, self._generation),
            name=f"sync-cycle-{target.client_id}",
        )
        self._in_flight[target.client_id] = task
        self._in_flight_generation[target.client_id] = self._generation

        def _on_cycle_done(
            t: asyncio.Task, client_id: str = target.client_id
        ) -> None:
            if self._in_flight.get(client_id) is t:
                del self._in_flight[client_id]
                del self._in_flight_generation[client_id]
            if not t.cancelled() and t.exception() is not None:
                logger.error("sync cycle task crashed: %s", t.exception())
            self._run_pending_tick(client_id)

        task.add_done_callback(_on_cycle_done)
        return task

    def _run_pending_tick(self, client_id: str) -> None:
        target = self._target
        if (
            not self._pending_tick
            or target is None
            or target.client_id != client_id
        ):
            return
        self._pending_tick = False
        logger.debug(
            "stale cycle for %s finished, running deferred tick", client_id
        )
        self.tick()

    async def _timer_loop(self, generation: int) -> None:
        while not self._stop_event.is_set() and generation == self._generation:
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(), timeout=self.poll_interval
                )
                break  # stop event was set
            except asyncio.TimeoutError:
                if generation != self._generation:
                    break
                self.tick()

    async def _run_cycle(
        self, target: SyncTarget, generation: int
    ) -> SyncSession | None:
        client_id = target.client_id

        def is_current() -> bool:
            return self.is_current(client_id, generation)

        if not is_current():
            return None

        self.status.is_syncing = True
        self.status.clear_error()

        session: SyncSession | None = None
        try:
            session = await self.engine.reconcile(
                client_id,
                target.api_key,
                generation=generation,
                is_current=is_current,
            )
        except Exception as e:
            error = as_sync_error(e)
            logger.exception("unexpected error in sync cycle: %s", e)
            if is_current():
                self.status.record_failure(error.to_failure())
        finally:
            if is_current():
                self.status.is_syncing = False
                self.status.cycles += 1

        if session is None:
            return None
        if not is_current():
            logger.debug(
                "dropping result of stale cycle for %s (generation %d)",
                client_id,
                generation,
            )
            return session

        if session.outcome == SessionOutcome.ABORTED and session.error:
            self.status.record_failure(session.error)
        elif session.outcome == SessionOutcome.COMMITTED:
            self.status.last_synced_at = datetime.now(timezone.utc).isoformat()
        return session

    def _cancel_timer(self) -> None:
        self._stop_event.set()
        if self._timer_task is not None:
            self._timer_task.cancel()
            self._timer_task = None

    async def wait_idle(self) -> None:
        """Wait for every outstanding cycle to finish."""
        while self._in_flight:
            await asyncio.gather(
                *list(self._in_flight.values()), return_exceptions=True
            )

    async def stop(self) -> None:
        """Stop polling and cancel outstanding cycles."""
        timer = self._timer_task
        self._cancel_timer()
        self._generation += 1
        self._target = None
        self._pending_tick = False
        self.status.is_syncing = False

        tasks = [t for t in (timer, *self._in_flight.values()) if t is not None]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._in_flight.clear()
        self._in_flight_generation.clear()
        logger.info("sync scheduler stopped")
