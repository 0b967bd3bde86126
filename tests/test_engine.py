"""Tests for the reconciliation engine."""

import asyncio

import pytest
from structlog.testing import capture_logs
from support import FOLDER_A, FailingIndex, GatedIndex, files

from drivesync.collaborators import MemoryDrive, MemoryIndex
from drivesync.engine import ReconciliationEngine
from drivesync.errors import ErrorKind
from drivesync.models import SYNCING_SUMMARY, FileStatus, SessionOutcome
from drivesync.registry import ClientRegistry


class RecordingIndex(MemoryIndex):
    """Captures the client's stored files at the moment sync is called."""

    def __init__(self, registry):
        super().__init__()
        self.registry = registry
        self.seen_statuses = []

    async def sync_files(self, client, remote_files, api_key):
        stored = self.registry.get(client.id)
        self.seen_statuses.append([f.status for f in stored.files])
        return await super().sync_files(client, remote_files, api_key)


class SlowDrive(MemoryDrive):
    async def list_files(self, folder_url):
        await asyncio.sleep(1.0)
        return await super().list_files(folder_url)


async def make_client(registry, folder=FOLDER_A):
    client = await registry.add("Acme")
    await registry.set_folder(client.id, folder)
    return client


@pytest.mark.asyncio
class TestReconcile:
    async def test_first_cycle_commits_indexed_files(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)

        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.COMMITTED
        assert session.error is None
        stored = reg.get(client.id)
        assert [f.id for f in stored.files] == ["1", "2"]
        assert all(f.status == FileStatus.INDEXED for f in stored.files)
        assert stored.files[0].summary == "alpha report"
        assert stored.baseline == stored.files

    async def test_second_identical_cycle_does_not_mutate(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")
        before = reg.get(client.id)

        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.UNCHANGED
        assert reg.get(client.id) is before
        assert index.sync_calls == 1

    async def test_content_change_triggers_sync(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")

        drive.set_files(
            FOLDER_A, files(("1", "alpha report v2"), ("2", "beta notes"))
        )
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.COMMITTED
        assert reg.get(client.id).files[0].content == "alpha report v2"
        assert index.sync_calls == 2

    async def test_reordering_is_a_change(self, index):
        drive = MemoryDrive()
        drive.set_files(FOLDER_A, files(("1", "a"), ("2", "b")))
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")

        drive.set_files(FOLDER_A, files(("2", "b"), ("1", "a")))
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.COMMITTED
        assert [f.id for f in reg.get(client.id).files] == ["2", "1"]

    async def test_reordering_ignored_when_normalized(self, index):
        drive = MemoryDrive()
        drive.set_files(FOLDER_A, files(("1", "a"), ("2", "b")))
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index, normalize_order=True)
        await engine.reconcile(client.id, "key")

        drive.set_files(FOLDER_A, files(("2", "b"), ("1", "a")))
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.UNCHANGED

    async def test_empty_folder_is_unchanged(self, index):
        drive = MemoryDrive()
        drive.set_files(FOLDER_A, [])
        reg = ClientRegistry()
        client = await make_client(reg)

        session = await ReconciliationEngine(reg, drive, index).reconcile(
            client.id, "key"
        )

        assert session.outcome == SessionOutcome.UNCHANGED
        assert index.sync_calls == 0

    async def test_fetch_failure_leaves_files_untouched(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")
        before = reg.get(client.id)

        drive.error = ConnectionError("drive offline")
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.ABORTED
        assert session.error.kind == ErrorKind.FETCH
        assert session.error.message == "drive offline"
        assert reg.get(client.id) is before
        assert index.sync_calls == 1

    async def test_status_passes_through_syncing(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = RecordingIndex(reg)
        engine = ReconciliationEngine(reg, drive, index)

        await engine.reconcile(client.id, "key")

        assert index.seen_statuses == [[FileStatus.SYNCING, FileStatus.SYNCING]]
        assert all(
            f.status in (FileStatus.INDEXED, FileStatus.ERROR)
            for f in reg.get(client.id).files
        )

    async def test_stale_cycle_is_discarded(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index)

        session = await engine.reconcile(
            client.id, "key", generation=3, is_current=lambda: False
        )

        assert session.outcome == SessionOutcome.DISCARDED
        assert session.generation == 3
        assert reg.get(client.id).files == ()
        assert index.sync_calls == 0

    async def test_stale_fetch_failure_is_discarded_quietly(self, drive, index):
        reg = ClientRegistry()
        client = await make_client(reg)
        drive.error = ConnectionError("drive offline")
        engine = ReconciliationEngine(reg, drive, index)

        with capture_logs() as logs:
            session = await engine.reconcile(
                client.id, "key", is_current=lambda: False
            )

        assert session.outcome == SessionOutcome.DISCARDED
        assert session.error is None
        assert not [e for e in logs if e["log_level"] == "warning"]

    async def test_client_without_folder_aborts(self, drive, index):
        reg = ClientRegistry()
        client = await reg.add("Acme")

        session = await ReconciliationEngine(reg, drive, index).reconcile(
            client.id, "key"
        )

        assert session.outcome == SessionOutcome.ABORTED
        assert session.error.kind == ErrorKind.UNKNOWN
        assert drive.list_calls == []

    async def test_call_timeout(self, index):
        drive = SlowDrive()
        drive.set_files(FOLDER_A, files(("1", "a")))
        reg = ClientRegistry()
        client = await make_client(reg)
        engine = ReconciliationEngine(reg, drive, index, call_timeout=0.01)

        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.ABORTED
        assert session.error.kind == ErrorKind.FETCH
        assert "timed out" in session.error.message


@pytest.mark.asyncio
class TestStaleDuringIndexSync:
    async def test_switch_before_commit_is_discarded(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = GatedIndex()
        engine = ReconciliationEngine(reg, drive, index)
        current = True

        task = asyncio.create_task(
            engine.reconcile(client.id, "key", is_current=lambda: current)
        )
        await index.entered.wait()
        current = False
        index.release()
        session = await task

        assert session.outcome == SessionOutcome.DISCARDED
        assert session.error is None
        stored = reg.get(client.id)
        # the optimistic write landed while current; the commit did not
        assert stored.baseline == ()
        assert all(f.status == FileStatus.SYNCING for f in stored.files)

    async def test_stale_index_failure_is_discarded(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = GatedIndex(error=RuntimeError("quota exceeded"))
        engine = ReconciliationEngine(reg, drive, index)
        current = True

        task = asyncio.create_task(
            engine.reconcile(client.id, "key", is_current=lambda: current)
        )
        await index.entered.wait()
        current = False
        index.release()
        session = await task

        assert session.outcome == SessionOutcome.DISCARDED
        assert session.error is None
        assert index.sync_calls == 1
        assert reg.get(client.id).baseline == ()


@pytest.mark.asyncio
class TestIndexFailure:
    async def test_quota_exceeded_keeps_placeholders(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = FailingIndex("quota exceeded")
        engine = ReconciliationEngine(reg, drive, index)

        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.ABORTED
        assert session.error.kind == ErrorKind.SYNC
        assert session.error.message == "quota exceeded"
        stored = reg.get(client.id)
        assert [f.id for f in stored.files] == ["1", "2"]
        assert all(f.status == FileStatus.SYNCING for f in stored.files)
        assert all(f.summary == SYNCING_SUMMARY for f in stored.files)
        # baseline is still the previous committed snapshot (empty)
        assert stored.baseline == ()

    async def test_failed_sync_is_retried_next_cycle(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = FailingIndex()
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")

        index.fail = False
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.COMMITTED
        assert all(
            f.status == FileStatus.INDEXED for f in reg.get(client.id).files
        )

    async def test_revert_to_committed_snapshot_leaves_files_stuck(self, drive):
        reg = ClientRegistry()
        client = await make_client(reg)
        index = FailingIndex()
        index.fail = False
        engine = ReconciliationEngine(reg, drive, index)
        await engine.reconcile(client.id, "key")
        committed = list(drive.folders[FOLDER_A])

        # remote changes, index fails -> placeholders for the new content
        drive.set_files(
            FOLDER_A, files(("1", "alpha report v2"), ("2", "beta notes"))
        )
        index.fail = True
        await engine.reconcile(client.id, "key")

        # remote reverts to the committed snapshot: no change is detected
        drive.set_files(FOLDER_A, committed)
        session = await engine.reconcile(client.id, "key")

        assert session.outcome == SessionOutcome.UNCHANGED
        stored = reg.get(client.id)
        assert all(f.status == FileStatus.SYNCING for f in stored.files)
        assert stored.files[0].content == "alpha report v2"
