"""Query command - sync a folder once, then ask the index."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import tyro

from drivesync import console
from drivesync.cli._common import attach_folder, build_service
from drivesync.errors import QueryError
from drivesync.logging_config import ENV_DEBUG, configure_logging


@dataclass
class Query:
    """Index a folder once and query it."""

    folder: Annotated[Path, tyro.conf.Positional] = field(
        metadata={"help": "Folder to index"},
    )
    query_text: Annotated[str, tyro.conf.Positional] = field(
        metadata={"help": "Search query text"},
    )
    api_key: str | None = field(
        default=None,
        metadata={"help": "Index API key (default: DRIVESYNC_INDEX_API_KEY)"},
    )
    debug: bool = field(
        default=False,
        metadata={"help": "Enable debug logging"},
    )

    def run(self) -> int:
        """Execute the query command."""
        if self.debug:
            os.environ[ENV_DEBUG] = "1"
            configure_logging(debug=True, force=True)

        if not self.folder.is_dir():
            console.error(f"not a directory: {self.folder}")
            return 1

        return asyncio.run(self._query())

    async def _query(self) -> int:
        service = build_service(self.api_key)
        try:
            await attach_folder(service, self.folder)
            await service.scheduler.wait_idle()

            report = service.status()
            if report.last_error:
                console.error(f"sync failed: {report.last_error}")
                return 1

            try:
                answer = await service.query(self.query_text)
            except QueryError as e:
                console.error(f"query failed: {e.message}")
                return 1
        finally:
            await service.stop()

        console.raw(answer)
        return 0
