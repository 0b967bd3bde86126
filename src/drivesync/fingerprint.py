"""Snapshot fingerprints and change detection.

A fingerprint is the concatenation of ``id + content`` for every file in
the order given. Reordering the same files yields a different fingerprint
and therefore counts as a change; pass ``normalize=True`` to sort by id
first when that churn is unwanted.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class Fingerprintable(Protocol):
    @property
    def id(self) -> str: ...

    @property
    def content(self) -> str: ...


def fingerprint(
    files: Iterable[Fingerprintable], normalize: bool = False
) -> str:
    """Build the signature of an ordered file snapshot.

    Examples:
        [{id: "1", content: "a"}, {id: "2", content: "b"}] -> "1a2b"
        [{id: "2", content: "b"}, {id: "1", content: "a"}] -> "2b1a"
    """
    items = list(files)
    if normalize:
        items.sort(key=lambda f: (f.id, f.content))
    return "".join(f.id + f.content for f in items)


def has_changed(
    stored: Iterable[Fingerprintable],
    candidate: Iterable[Fingerprintable],
    normalize: bool = False,
) -> bool:
    """Return True when the candidate snapshot differs from the stored one."""
    return fingerprint(stored, normalize) != fingerprint(candidate, normalize)
