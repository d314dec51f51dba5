"""
Parallel, chunked bulk insert.

``BulkInsertEngine.insert`` splits the input into chunks and loads them
on a bounded thread pool.  Every chunk runs on its own connection in its
own transaction:

    connect → BEGIN → load (table lock, batch = chunk size) → COMMIT
                           └─ on error: ROLLBACK, chunk reported as Err

NOT ATOMIC ACROSS CHUNKS.  A failing chunk rolls back only itself; chunks
that already committed stay committed.  When the result is an
``Err(BulkInsertError)`` the caller must assume the insert is partially
applied (``BulkInsertError.committed_chunks`` says which chunks landed).
Nothing is retried.

Primary-key columns are not loaded; the store assigns keys.

Examples:
    >>> engine = BulkInsertEngine("sqlite:///data/shop.db")
    >>> result = engine.insert(products, chunk_size=500, max_parallelism=4)
    >>> result.unwrap().rows
    1200

Tags:
    bulk-insert, chunking, thread-pool, transactions, bulk-spine
"""

from __future__ import annotations

import threading
import time
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any

from sqlalchemy.engine import Engine

from bulkspine.bulk.chunking import Chunk, split
from bulkspine.bulk.loader import BulkLoader, RowBuffer, select_loader
from bulkspine.bulk.schema import RowTypeDescriptor, describe, target_table
from bulkspine.core.connection import ConnectionSource, resolve_engine, shares_one_connection
from bulkspine.core.errors import BulkInsertError, ChunkLoadError, ValidationError
from bulkspine.core.logging import get_logger
from bulkspine.core.result import Err, Ok, Result, partition_results
from bulkspine.core.settings import BulkSpineSettings, get_settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class ChunkOutcome:
    """A chunk that committed."""

    index: int
    rows: int
    elapsed_ms: float


@dataclass(frozen=True)
class InsertReport:
    """Summary of a fully committed bulk insert."""

    table: str
    rows: int
    outcomes: tuple[ChunkOutcome, ...] = ()

    @property
    def chunks(self) -> int:
        return len(self.outcomes)


class BulkInsertEngine:
    """Loads rows into one table with independent, parallel per-chunk transactions."""

    def __init__(
        self,
        source: ConnectionSource = None,
        *,
        settings: BulkSpineSettings | None = None,
        loader: BulkLoader | None = None,
    ):
        self._source = source
        self._settings = settings or get_settings()
        self._loader = loader
        self._lock = threading.Lock()
        self._completed = 0

    @property
    def completed_chunks(self) -> int:
        """Chunks finished by the current or last call, for progress logging only."""
        return self._completed

    def insert(
        self,
        rows: Iterable[Any],
        *,
        row_type: type | None = None,
        table_name: str | None = None,
        chunk_size: int | None = None,
        max_parallelism: int | None = None,
    ) -> Result[InsertReport]:
        """Insert *rows* into the row type's table.

        Args:
            rows: Instances of one row type.
            row_type: Row type; defaults to the type of the first row.
            table_name: Overrides the descriptor's table name.
            chunk_size: Rows per chunk/transaction (settings default).
            max_parallelism: Worker threads (settings default).

        Returns:
            ``Ok(InsertReport)`` when every chunk committed, otherwise
            ``Err(BulkInsertError)``; some chunks may still have committed.

        Raises:
            SchemaError: The row type has no persisted columns (before I/O).
            ValidationError: ``chunk_size`` or ``max_parallelism`` is not positive.
        """
        rows = list(rows)
        if not rows:
            return Ok(InsertReport(table=target_table(row_type, table_name), rows=0))

        chunk_size = self._settings.chunk_size if chunk_size is None else chunk_size
        width = self._settings.max_parallelism if max_parallelism is None else max_parallelism
        if width <= 0:
            raise ValidationError(
                f"max_parallelism must be > 0, got {width}", field="max_parallelism", value=width
            )

        descriptor = describe(row_type or type(rows[0]))
        target = table_name or descriptor.table_name
        chunks = split(rows, chunk_size)

        engine = resolve_engine(self._source, self._settings)
        loader = self._loader or select_loader(engine)
        self._completed = 0

        workers = min(width, len(chunks))
        if workers > 1 and shares_one_connection(engine):
            # one DBAPI connection cannot carry concurrent transactions
            logger.info("bulk.insert.serialized", table=target, requested=width)
            workers = 1

        logger.info(
            "bulk.insert.started",
            table=target,
            rows=len(rows),
            chunks=len(chunks),
            chunk_size=chunk_size,
            workers=workers,
        )

        results: list[Result[ChunkOutcome]] = []
        with ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix="bulk-insert"
        ) as pool:
            futures = [
                pool.submit(
                    self._load_chunk, engine, loader, descriptor, target, chunk, chunk_size
                )
                for chunk in chunks
            ]
            for future in as_completed(futures):
                results.append(future.result())

        outcomes, errors = partition_results(results)
        outcomes.sort(key=lambda o: o.index)

        if errors:
            failures = sorted(errors, key=lambda e: e.chunk_index)
            error = BulkInsertError(
                f"{len(failures)} of {len(chunks)} chunks failed inserting into {target}; "
                f"{len(outcomes)} chunks committed",
                failures=failures,
                committed_chunks=[o.index for o in outcomes],
            ).with_context(table=target, row_type=descriptor.row_type.__name__, operation="insert")
            logger.error(
                "bulk.insert.failed",
                table=target,
                failed_chunks=error.failed_chunks,
                committed_chunks=error.committed_chunks,
            )
            return Err(error)

        report = InsertReport(table=target, rows=len(rows), outcomes=tuple(outcomes))
        logger.info("bulk.insert.completed", table=target, rows=report.rows, chunks=report.chunks)
        return Ok(report)

    def _load_chunk(
        self,
        engine: Engine,
        loader: BulkLoader,
        descriptor: RowTypeDescriptor,
        target: str,
        chunk: Chunk,
        batch_size: int,
    ) -> Result[ChunkOutcome]:
        started = time.perf_counter()
        conn = None
        trans = None
        try:
            conn = engine.connect()
            trans = conn.begin()
            buffer = RowBuffer.from_rows(descriptor, chunk.rows)
            loader.load(conn, target, buffer, batch_size=batch_size)
            trans.commit()
        except Exception as exc:  # noqa: BLE001 - becomes this chunk's Err
            if trans is not None:
                self._rollback(trans, target, chunk)
            logger.warning(
                "bulk.insert.chunk_failed",
                table=target,
                chunk=chunk.index,
                rows=len(chunk),
                error=str(exc),
            )
            return Err(
                ChunkLoadError(
                    f"Chunk {chunk.index} ({len(chunk)} rows) failed inserting into {target}: {exc}",
                    chunk_index=chunk.index,
                    rows=len(chunk),
                    cause=exc,
                ).with_context(table=target)
            )
        finally:
            if conn is not None:
                conn.close()
            with self._lock:
                self._completed += 1

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.debug(
            "bulk.insert.chunk_committed",
            table=target,
            chunk=chunk.index,
            rows=len(chunk),
            elapsed_ms=round(elapsed_ms, 2),
            completed=self._completed,
        )
        return Ok(ChunkOutcome(index=chunk.index, rows=len(chunk), elapsed_ms=elapsed_ms))

    @staticmethod
    def _rollback(trans: Any, target: str, chunk: Chunk) -> None:
        if not trans.is_active:
            return
        try:
            trans.rollback()
        except Exception as exc:  # noqa: BLE001 - the load error is the one reported
            logger.error(
                "bulk.insert.rollback_failed", table=target, chunk=chunk.index, error=str(exc)
            )


__all__ = [
    "BulkInsertEngine",
    "ChunkOutcome",
    "InsertReport",
]
