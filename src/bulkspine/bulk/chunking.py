"""
Chunk planning for the bulk insert path.

Pure, no I/O.  ``split`` turns N rows into ``ceil(N / chunk_size)``
chunks; every chunk but possibly the last holds exactly ``chunk_size``
rows and keeps the input order.  Empty input gives no chunks at all, so
callers can return before opening a connection.

Examples:
    >>> [len(c) for c in split(range(25), 10)]
    [10, 10, 5]
    >>> split([], 10)
    []
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from itertools import islice
from typing import Any

from bulkspine.core.errors import ValidationError


@dataclass(frozen=True)
class Chunk:
    """An ordered slice of the input, loaded as one transaction."""

    index: int
    rows: tuple[Any, ...]

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[Any]:
        return iter(self.rows)


def split(rows: Iterable[Any], chunk_size: int) -> list[Chunk]:
    """Split *rows* into chunks of at most *chunk_size* rows.

    Raises:
        ValidationError: ``chunk_size`` is not positive.
    """
    if chunk_size <= 0:
        raise ValidationError(
            f"chunk_size must be > 0, got {chunk_size}", field="chunk_size", value=chunk_size
        )

    if isinstance(rows, Sequence):
        return [
            Chunk(index=i, rows=tuple(rows[start : start + chunk_size]))
            for i, start in enumerate(range(0, len(rows), chunk_size))
        ]

    chunks: list[Chunk] = []
    iterator = iter(rows)
    while batch := tuple(islice(iterator, chunk_size)):
        chunks.append(Chunk(index=len(chunks), rows=batch))
    return chunks


__all__ = ["Chunk", "split"]
