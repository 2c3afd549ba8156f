"""
Abstract base class for file-backed table sources.

``csv_table`` and ``generate_rows`` work against ``AbstractSource`` so other
formats can feed external tables without touching the staging layer.

Usage:
    with CSVReader(path) as source:
        headers = source.headers()
        for row in source.rows():
            process(row)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Iterator


class AbstractSource(ABC):
    """
    Interface for tabular file readers.

    Subclasses implement ``open``, ``headers``, ``rows`` and ``close``;
    the context manager delegates to ``open`` / ``close``.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    @abstractmethod
    def open(self) -> None:
        """Open the source.  Must be called before ``headers`` or ``rows``."""

    @abstractmethod
    def headers(self) -> list[str]:
        """Return the raw header strings (read once, cached)."""

    @abstractmethod
    def rows(self) -> Iterator[list[str]]:
        """
        Yield each data row as a list of raw strings, header excluded.

        Each call rewinds to the first data row.
        """

    @abstractmethod
    def close(self) -> None:
        """Release file handles."""

    def __enter__(self) -> "AbstractSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
        return None
