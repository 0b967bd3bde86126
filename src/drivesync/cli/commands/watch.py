"""Watch command - keep a local folder mirrored into the index."""

from __future__ import annotations

import asyncio
import os
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import tyro

from drivesync import console
from drivesync.cli._common import attach_folder, build_service
from drivesync.logging_config import ENV_DEBUG, configure_logging
from drivesync.models import SyncStatusReport


def _describe(report: SyncStatusReport) -> str:
    if report.is_syncing:
        return "syncing..."
    if report.last_error:
        return f"error: {report.last_error}"
    if report.last_synced_at:
        return f"up to date (last sync {report.last_synced_at})"
    return "idle"


@dataclass
class Watch:
    """Poll a local folder and re-index it whenever it changes."""

    folder: Annotated[Path, tyro.conf.Positional] = field(
        metadata={"help": "Folder to mirror (stands in for the remote store)"},
    )
    name: str | None = field(
        default=None,
        metadata={"help": "Client name (default: folder name)"},
    )
    api_key: str | None = field(
        default=None,
        metadata={"help": "Index API key (default: DRIVESYNC_INDEX_API_KEY)"},
    )
    interval: float | None = field(
        default=None,
        metadata={"help": "Seconds between change checks"},
    )
    duration: float = field(
        default=0.0,
        metadata={"help": "Stop after this many seconds (0 = until Ctrl-C)"},
    )
    normalize: bool = field(
        default=False,
        metadata={"help": "Ignore file order when detecting changes"},
    )
    json: bool = field(
        default=False,
        metadata={"help": "Print status reports as JSON lines"},
    )
    debug: bool = field(
        default=False,
        metadata={"help": "Enable debug logging"},
    )

    def run(self) -> int:
        """Execute the watch command."""
        if self.debug:
            os.environ[ENV_DEBUG] = "1"
            configure_logging(debug=True, force=True)

        if not self.folder.is_dir():
            console.error(f"not a directory: {self.folder}")
            return 1

        return asyncio.run(self._watch())

    async def _watch(self) -> int:
        service = build_service(self.api_key, self.interval, self.normalize)
        await attach_folder(service, self.folder, self.name)
        console.info(
            f"watching {self.folder} every {service.scheduler.poll_interval:g}s"
        )

        deadline = None
        if self.duration > 0:
            deadline = time.monotonic() + self.duration
        last_line: str | None = None
        try:
            while deadline is None or time.monotonic() < deadline:
                report = service.status()
                if self.json:
                    line = report.model_dump_json()
                else:
                    line = _describe(report)
                if line != last_line:
                    if self.json:
                        console.raw(line)
                    elif report.last_error:
                        console.warning(line)
                    else:
                        console.dim(line)
                    last_line = line
                await asyncio.sleep(0.25)
        finally:
            await service.stop()

        for info in service.clients():
            for f in info.files:
                console.raw(f"{f.status.value:8} {f.name or f.id}: {f.summary}")
        return 0
