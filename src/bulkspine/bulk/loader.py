"""
Native bulk-load strategies.

A loader writes a :class:`RowBuffer` into a table over a connection that
already has a transaction open; it never commits.  Two strategies exist:

- :class:`ExecutemanyLoader` -- SQLAlchemy Core ``insert()`` with a list of
  parameter sets per batch.  On SQL Server the engine is created with
  pyodbc's ``fast_executemany`` and the statement carries ``WITH (TABLOCK)``;
  elsewhere SQLAlchemy's insertmanyvalues batching applies.
- :class:`CopyLoader` -- PostgreSQL ``COPY ... FROM STDIN`` through
  psycopg2's ``copy_expert``, one COPY per batch.

``select_loader(bind)`` picks the fastest strategy the driver supports.

Examples:
    >>> buffer = RowBuffer.from_rows(describe(Product), products)
    >>> with engine.begin() as conn:
    ...     select_loader(conn).load(conn, "products", buffer, batch_size=1000)
    3
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from itertools import islice
from typing import Any, Protocol

from sqlalchemy import column, insert, table
from sqlalchemy.engine import Connection
from sqlalchemy.types import TypeEngine

from bulkspine.core.dialect import dialect_for
from bulkspine.core.logging import get_logger
from bulkspine.bulk.schema import ColumnDescriptor, RowTypeDescriptor

logger = get_logger(__name__)


@dataclass(frozen=True)
class RowBuffer:
    """Column-mapped tabular buffer: store-side column names plus row tuples.

    Row order is the input order.
    """

    columns: tuple[str, ...]
    types: tuple[TypeEngine, ...]
    rows: tuple[tuple[Any, ...], ...]

    @classmethod
    def from_rows(
        cls,
        descriptor: RowTypeDescriptor,
        rows: Iterable[Any],
        columns: tuple[ColumnDescriptor, ...] | None = None,
    ) -> RowBuffer:
        """Materialize *rows* using *columns* (default: the data columns)."""
        columns = columns or descriptor.columns
        return cls(
            columns=tuple(c.name for c in columns),
            types=tuple(c.store_type for c in columns),
            rows=tuple(descriptor.values(row, columns) for row in rows),
        )

    def __len__(self) -> int:
        return len(self.rows)

    def batches(self, batch_size: int | None) -> Iterator[tuple[tuple[Any, ...], ...]]:
        """Yield row batches; ``None`` means a single batch."""
        if batch_size is None:
            if self.rows:
                yield self.rows
            return
        iterator = iter(self.rows)
        while batch := tuple(islice(iterator, batch_size)):
            yield batch


class BulkLoader(Protocol):
    """Writes a buffer into a table inside the caller's transaction."""

    def load(
        self,
        conn: Connection,
        table_name: str,
        buffer: RowBuffer,
        *,
        batch_size: int | None = None,
    ) -> int:
        """Load *buffer* into *table_name*, returning the number of rows written."""
        ...


def _target(table_name: str, buffer: RowBuffer) -> Any:
    schema, _, name = table_name.rpartition(".")
    return table(
        name,
        *(column(n, t) for n, t in zip(buffer.columns, buffer.types)),
        schema=schema or None,
    )


def _lock(conn: Connection, table_name: str) -> None:
    statement = dialect_for(conn).table_lock_statement(table_name)
    if statement:
        conn.exec_driver_sql(statement)


class ExecutemanyLoader:
    """Core ``insert()`` executed with one parameter list per batch."""

    def load(
        self,
        conn: Connection,
        table_name: str,
        buffer: RowBuffer,
        *,
        batch_size: int | None = None,
    ) -> int:
        if not buffer.rows:
            return 0
        dialect = dialect_for(conn)
        _lock(conn, table_name)

        statement = insert(_target(table_name, buffer))
        hint = dialect.insert_hint()
        if hint:
            statement = statement.with_hint(hint, dialect_name=dialect.name)

        written = 0
        for batch in buffer.batches(batch_size):
            conn.execute(statement, [dict(zip(buffer.columns, row)) for row in batch])
            written += len(batch)
        return written


_COPY_ESCAPES = str.maketrans({"\\": "\\\\", "\t": "\\t", "\n": "\\n", "\r": "\\r"})


def _copy_text(value: Any) -> str:
    if value is None:
        return "\\N"
    if isinstance(value, bool):
        return "t" if value else "f"
    return str(value).translate(_COPY_ESCAPES)


class CopyLoader:
    """PostgreSQL ``COPY FROM STDIN`` (text format) through psycopg2.

    Values go through each column type's bind processor first, so enums
    and other custom types arrive in the form the ORM would have sent.
    """

    def load(
        self,
        conn: Connection,
        table_name: str,
        buffer: RowBuffer,
        *,
        batch_size: int | None = None,
    ) -> int:
        if not buffer.rows:
            return 0
        dialect = dialect_for(conn)
        _lock(conn, table_name)

        sa_dialect = conn.dialect
        processors = [
            t.dialect_impl(sa_dialect).bind_processor(sa_dialect) for t in buffer.types
        ]
        columns = ", ".join(dialect.quote(c) for c in buffer.columns)
        sql = f"COPY {dialect.quote(table_name)} ({columns}) FROM STDIN WITH (FORMAT text)"

        cursor = conn.connection.dbapi_connection.cursor()
        written = 0
        try:
            for batch in buffer.batches(batch_size):
                stream = io.StringIO()
                for row in batch:
                    values = (
                        proc(value) if proc is not None else value
                        for proc, value in zip(processors, row)
                    )
                    stream.write("\t".join(_copy_text(v) for v in values))
                    stream.write("\n")
                stream.seek(0)
                cursor.copy_expert(sql, stream)
                written += len(batch)
        finally:
            cursor.close()
        return written


def select_loader(bind: Any) -> BulkLoader:
    """Pick the bulk-load strategy for a SQLAlchemy engine or connection."""
    sa_dialect = bind.dialect
    if sa_dialect.name == "postgresql" and sa_dialect.driver == "psycopg2":
        return CopyLoader()
    return ExecutemanyLoader()


__all__ = [
    "RowBuffer",
    "BulkLoader",
    "ExecutemanyLoader",
    "CopyLoader",
    "select_loader",
]
