"""Fingerprint command - show the change-detection signature of a folder."""

from __future__ import annotations

import asyncio
import hashlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated

import tyro

from drivesync import console
from drivesync.collaborators import LocalFolderDrive
from drivesync.fingerprint import fingerprint


@dataclass
class Fingerprint:
    """Print the fingerprint of a folder snapshot."""

    folder: Annotated[Path, tyro.conf.Positional] = field(
        metadata={"help": "Folder to fingerprint"},
    )
    normalize: bool = field(
        default=False,
        metadata={"help": "Sort files by id before fingerprinting"},
    )
    full: bool = field(
        default=False,
        metadata={"help": "Print the raw fingerprint instead of its sha256"},
    )

    def run(self) -> int:
        """Execute the fingerprint command."""
        if not self.folder.is_dir():
            console.error(f"not a directory: {self.folder}")
            return 1

        files = asyncio.run(LocalFolderDrive().list_files(str(self.folder)))
        fp = fingerprint(files, normalize=self.normalize)
        if self.full:
            console.raw(fp)
        else:
            digest = hashlib.sha256(fp.encode()).hexdigest()
            console.raw(f"{digest}  {len(files)} file(s)")
        return 0
