"""Remote store and search index collaborators.

The sync core only talks to these two interfaces. Concrete transports
(Google Drive, a hosted file-search API, ...) live outside the package;
the implementations here back the CLI and the test suite.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from pathlib import Path
from urllib.parse import unquote, urlparse

from drivesync.logging_config import get_logger
from drivesync.models import Client, FileStatus, RemoteFile, SyncedFile

logger = get_logger("collaborators")

SUMMARY_MAX_CHARS = 80
EMPTY_SUMMARY = "(empty file)"
NO_MATCH_ANSWER = "No matching documents found."


class DriveCollaborator(ABC):
    """Lists the files of a remote folder."""

    @abstractmethod
    async def connect(self) -> bool:
        """Establish connectivity. Returns False when refused."""
        ...

    @abstractmethod
    async def list_files(self, folder_url: str) -> list[RemoteFile]:
        """Return the folder's files in remote order.

        Raises on transport failure.
        """
        ...


class IndexCollaborator(ABC):
    """Owns a per-client search index."""

    @abstractmethod
    async def sync_files(
        self, client: Client, remote_files: list[RemoteFile], api_key: str
    ) -> list[SyncedFile]:
        """Drop stale entries, (re-)index every current file.

        Returns the authoritative post-sync records, each ``indexed`` or
        ``error``, in remote order.
        """
        ...

    @abstractmethod
    async def query(self, client: Client, text: str, api_key: str) -> str:
        ...


class MemoryDrive(DriveCollaborator):
    """In-process drive holding folders as lists of files."""

    def __init__(
        self,
        folders: dict[str, list[RemoteFile]] | None = None,
        reachable: bool = True,
    ) -> None:
        self.folders: dict[str, list[RemoteFile]] = dict(folders or {})
        self.reachable = reachable
        self.error: Exception | None = None
        self.list_calls: list[str] = []

    def set_files(self, folder_url: str, files: list[RemoteFile]) -> None:
        self.folders[folder_url] = list(files)

    async def connect(self) -> bool:
        return self.reachable

    async def list_files(self, folder_url: str) -> list[RemoteFile]:
        self.list_calls.append(folder_url)
        if self.error is not None:
            raise self.error
        if folder_url not in self.folders:
            raise FileNotFoundError(f"folder not found: {folder_url}")
        return list(self.folders[folder_url])


def folder_path(folder_url: str) -> Path:
    """Resolve a plain path or ``file://`` URL to a local directory."""
    parsed = urlparse(folder_url)
    if parsed.scheme == "file":
        return Path(unquote(parsed.path))
    return Path(folder_url).expanduser()


class LocalFolderDrive(DriveCollaborator):
    """Treats a local directory as the remote folder.

    Regular, non-hidden files directly inside the directory are listed,
    sorted by name; the file name is the stable id.
    """

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    async def connect(self) -> bool:
        return True

    async def list_files(self, folder_url: str) -> list[RemoteFile]:
        return await asyncio.to_thread(self._list_files_sync, folder_url)

    def _list_files_sync(self, folder_url: str) -> list[RemoteFile]:
        root = folder_path(folder_url)
        if not root.is_dir():
            raise FileNotFoundError(f"folder not found: {root}")

        files: list[RemoteFile] = []
        for path in sorted(root.iterdir(), key=lambda p: p.name):
            if path.name.startswith(".") or not path.is_file():
                continue
            content = path.read_text(encoding=self.encoding, errors="replace")
            files.append(
                RemoteFile(id=path.name, content=content, name=path.name)
            )
        logger.debug("listed %d file(s) in %s", len(files), root)
        return files


def summarize(content: str) -> str:
    """First non-blank line, truncated."""
    for line in content.splitlines():
        line = line.strip()
        if line:
            if len(line) > SUMMARY_MAX_CHARS:
                return line[: SUMMARY_MAX_CHARS - 3] + "..."
            return line
    return EMPTY_SUMMARY


class MemoryIndex(IndexCollaborator):
    """In-process index: one document table per client.

    Blank files are recorded with ``error`` status. ``max_files`` emulates
    a per-client quota on the hosted service.
    """

    def __init__(self, max_files: int | None = None) -> None:
        self.max_files = max_files
        self.documents: dict[str, dict[str, SyncedFile]] = {}
        self.sync_calls = 0

    async def sync_files(
        self, client: Client, remote_files: list[RemoteFile], api_key: str
    ) -> list[SyncedFile]:
        self.sync_calls += 1
        if not api_key.strip():
            raise PermissionError("index API key is required")
        if self.max_files is not None and len(remote_files) > self.max_files:
            raise RuntimeError("quota exceeded")

        table = self.documents.setdefault(client.id, {})
        current_ids = {rf.id for rf in remote_files}
        stale = [doc_id for doc_id in table if doc_id not in current_ids]
        for doc_id in stale:
            del table[doc_id]

        records: list[SyncedFile] = []
        for rf in remote_files:
            if rf.content.strip():
                record = SyncedFile(
                    id=rf.id,
                    content=rf.content,
                    summary=summarize(rf.content),
                    status=FileStatus.INDEXED,
                    name=rf.name,
                )
            else:
                record = SyncedFile(
                    id=rf.id,
                    content=rf.content,
                    summary=EMPTY_SUMMARY,
                    status=FileStatus.ERROR,
                    name=rf.name,
                )
            table[rf.id] = record
            records.append(record)

        logger.debug(
            "index for %s: %d document(s), %d stale removed",
            client.id,
            len(table),
            len(stale),
        )
        return records

    async def query(self, client: Client, text: str, api_key: str) -> str:
        if not api_key.strip():
            raise PermissionError("index API key is required")

        terms = [t for t in text.lower().split() if t]
        table = self.documents.get(client.id, {})
        matches = [
            doc
            for doc in table.values()
            if doc.status == FileStatus.INDEXED
            and all(t in doc.content.lower() for t in terms)
        ]
        if not terms or not matches:
            return NO_MATCH_ANSWER

        lines = [f"Found {len(matches)} matching document(s):"]
        lines.extend(
            f"- {doc.name or doc.id}: {doc.summary}" for doc in matches
        )
        return "\n".join(lines)
