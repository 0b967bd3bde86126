"""Shared test doubles for the sync tests."""

import asyncio

import pytest

from drivesync.collaborators import MemoryDrive, MemoryIndex
from drivesync.models import RemoteFile

FOLDER_A = "drive://folders/acme"
FOLDER_B = "drive://folders/globex"


class GatedDrive(MemoryDrive):
    """MemoryDrive whose listing blocks until ``release()`` is called."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    def release(self):
        self.gate.set()

    async def list_files(self, folder_url):
        self.entered.set()
        await self.gate.wait()
        return await super().list_files(folder_url)


class GatedIndex(MemoryIndex):
    """MemoryIndex whose sync blocks until ``release()`` is called.

    With ``error`` set the released sync raises it instead of indexing.
    """

    def __init__(self, error=None):
        super().__init__()
        self.error = error
        self.gate = asyncio.Event()
        self.entered = asyncio.Event()

    def release(self):
        self.gate.set()

    async def sync_files(self, client, remote_files, api_key):
        self.entered.set()
        await self.gate.wait()
        if self.error is not None:
            self.sync_calls += 1
            raise self.error
        return await super().sync_files(client, remote_files, api_key)


class FailingIndex(MemoryIndex):
    def __init__(self, message="quota exceeded"):
        super().__init__()
        self.message = message
        self.fail = True

    async def sync_files(self, client, remote_files, api_key):
        if self.fail:
            self.sync_calls += 1
            raise RuntimeError(self.message)
        return await super().sync_files(client, remote_files, api_key)

    async def query(self, client, text, api_key):
        raise ConnectionResetError("index unreachable")


async def wait_until(predicate, timeout=2.0, interval=0.005):
    """Poll ``predicate`` until it is truthy or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not met before timeout")
        await asyncio.sleep(interval)


def files(*pairs):
    return [RemoteFile(id=i, content=c, name=f"{i}.txt") for i, c in pairs]


