"""
Atomic set-based bulk update through a staging table.

``BulkUpdateEngine.update`` runs every step in ONE transaction on ONE
connection:

    BEGIN
      1. CREATE [TEMPORARY] TABLE <staging> (keys + data columns)
      2. bulk-load every row into <staging>        (no chunking)
      3. merge <staging> into <target> on the key  (update-only)
      4. DROP TABLE <staging>
    COMMIT

If any step fails the transaction is rolled back: the target keeps its
pre-call data and the staging table is gone with the transaction.  The
failure comes back as ``Err(MergeError)`` with ``step`` naming what
failed.  Rows in staging without a match in the target are ignored; this
is not an upsert.

Examples:
    >>> result = BulkUpdateEngine(session).update(products)
    >>> result.unwrap().matched
    1200

Tags:
    bulk-update, staging-table, merge, transactions, bulk-spine
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Column, MetaData, Table, text
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateTable, DropTable

from bulkspine.bulk.loader import BulkLoader, RowBuffer, select_loader
from bulkspine.bulk.schema import RowTypeDescriptor, describe, target_table
from bulkspine.core.connection import ConnectionSource, resolve_engine
from bulkspine.core.dialect import Dialect, dialect_for
from bulkspine.core.enums import MergeStep
from bulkspine.core.errors import MergeError, SchemaError
from bulkspine.core.logging import get_logger
from bulkspine.core.result import Err, Ok, Result
from bulkspine.core.settings import BulkSpineSettings, get_settings

logger = get_logger(__name__)


@dataclass(frozen=True)
class UpdateReport:
    """Summary of a committed bulk update."""

    table: str
    rows: int
    matched: int
    """Target rows the merge reported as updated (driver rowcount)."""


def staging_table(descriptor: RowTypeDescriptor, name: str, dialect: Dialect) -> Table:
    """Build the staging ``Table``: key columns then data columns, no constraints."""
    return Table(
        name,
        MetaData(),
        *(Column(c.name, c.store_type) for c in descriptor.merge_columns),
        prefixes=dialect.staging_prefixes(),
    )


class BulkUpdateEngine:
    """Applies a collection of row updates as one atomic staging-table merge."""

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

    def update(
        self,
        rows: Iterable[Any],
        *,
        row_type: type | None = None,
        table_name: str | None = None,
    ) -> Result[UpdateReport]:
        """Update every target row whose key matches one of *rows*.

        Returns:
            ``Ok(UpdateReport)`` after commit, or ``Err(MergeError)`` after a
            full rollback.

        Raises:
            SchemaError: The row type has no data or no key columns (before I/O).
        """
        rows = list(rows)
        if not rows:
            return Ok(UpdateReport(table=target_table(row_type, table_name), rows=0, matched=0))

        descriptor = describe(row_type or type(rows[0]))
        if not descriptor.key_columns:
            raise SchemaError(
                f"{descriptor.row_type.__name__} has no key column to merge on"
            ).with_context(row_type=descriptor.row_type.__name__, table=descriptor.table_name)
        target = table_name or descriptor.table_name

        engine = resolve_engine(self._source, self._settings)
        loader = self._loader or select_loader(engine)
        dialect = dialect_for(engine)
        staging = staging_table(descriptor, dialect.staging_table_name(target), dialect)
        buffer = RowBuffer.from_rows(descriptor, rows, descriptor.merge_columns)

        logger.info("bulk.update.started", table=target, rows=len(rows), staging=staging.name)

        step = MergeStep.CONNECT
        conn = None
        trans = None
        try:
            conn = engine.connect()
            trans = conn.begin()

            step = MergeStep.CREATE_STAGING
            self._create_staging(conn, staging)

            step = MergeStep.LOAD
            loader.load(conn, staging.name, buffer, batch_size=None)

            step = MergeStep.MERGE
            matched = self._merge(conn, dialect, descriptor, target, staging.name)

            step = MergeStep.DROP_STAGING
            self._drop_staging(conn, staging)

            step = MergeStep.COMMIT
            trans.commit()
        except Exception as exc:  # noqa: BLE001 - returned as MergeError
            if trans is not None:
                self._rollback(trans, target, step)
            logger.error("bulk.update.failed", table=target, step=step.value, error=str(exc))
            return Err(
                MergeError(
                    f"Bulk update of {target} failed at step '{step.value}': {exc}",
                    step=step.value,
                    cause=exc,
                ).with_context(
                    table=target,
                    row_type=descriptor.row_type.__name__,
                    operation="update",
                )
            )
        finally:
            if conn is not None:
                conn.close()

        logger.info("bulk.update.completed", table=target, rows=len(rows), matched=matched)
        return Ok(UpdateReport(table=target, rows=len(rows), matched=matched))

    def _create_staging(self, conn: Connection, staging: Table) -> None:
        conn.execute(CreateTable(staging))

    def _merge(
        self,
        conn: Connection,
        dialect: Dialect,
        descriptor: RowTypeDescriptor,
        target: str,
        staging_name: str,
    ) -> int:
        sql = dialect.merge_update(
            target,
            staging_name,
            [c.name for c in descriptor.key_columns],
            descriptor.column_names,
        )
        result = conn.execute(text(sql))
        logger.debug("bulk.update.merge_applied", table=target, matched=result.rowcount)
        return result.rowcount

    def _drop_staging(self, conn: Connection, staging: Table) -> None:
        conn.execute(DropTable(staging))

    @staticmethod
    def _rollback(trans: Any, target: str, step: MergeStep) -> None:
        if not trans.is_active:
            return
        try:
            trans.rollback()
        except Exception as exc:  # noqa: BLE001 - the step error is the one reported
            logger.error(
                "bulk.update.rollback_failed", table=target, step=step.value, error=str(exc)
            )


__all__ = [
    "BulkUpdateEngine",
    "UpdateReport",
    "staging_table",
]
