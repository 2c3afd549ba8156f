"""
Batch queue of immutable binding snapshots.

Entries are appended in order and only ever removed all at once.  Each
``BatchEntry`` is frozen, so the queue holds no references into mutable
slot storage.
"""

from __future__ import annotations

from typing import Iterator

from tablebatch.models.models import BatchEntry


class BatchQueue:
    """Append-only (until cleared) FIFO of ``BatchEntry`` records."""

    def __init__(self) -> None:
        self._entries: list[BatchEntry] = []

    def append(self, entry: BatchEntry) -> int:
        """Queue ``entry``; return its 1-based position."""
        self._entries.append(entry)
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[BatchEntry]:
        return iter(tuple(self._entries))

    def __getitem__(self, index: int) -> BatchEntry:
        return self._entries[index]

    def clear(self) -> None:
        self._entries.clear()
