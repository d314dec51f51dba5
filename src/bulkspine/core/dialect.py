"""SQL dialect abstraction for the bulk paths.

Provides a ``Dialect`` protocol and one implementation per supported
backend.  The bulk engines use ``Dialect`` methods for every piece of
backend-specific SQL they emit (staging table naming, the set-based
merge, table-lock statements and hints) so that ``bulk.insert`` and
``bulk.update`` never branch on the database name themselves.

Manifesto:
    The bulk paths must run unchanged on SQLite (tests, local files),
    PostgreSQL and SQL Server. Without a dialect layer the merge and the
    lock hints end up as ``if backend == ...`` ladders inside the engines.

    - **One interface:** Dialect protocol for all generated SQL
    - **Zero coupling:** Engines never import database drivers
    - **Auto-detection:** ``dialect_for(bind)`` picks the implementation

Architecture::

    BulkUpdateEngine / BulkInsertEngine
                 │  staging_table_name(), merge_update(), insert_hint()
                 ▼
    ┌───────────────────┐ ┌──────────────────────┐ ┌───────────────────────┐
    │ SQLite            │ │ PostgreSQL           │ │ SQL Server            │
    │ TEMPORARY staging │ │ TEMPORARY staging    │ │ #staging              │
    │ UPDATE ... EXISTS │ │ UPDATE ... FROM      │ │ MERGE ... WHEN MATCHED│
    │ no lock statement │ │ LOCK TABLE ...       │ │ WITH (TABLOCK)        │
    └───────────────────┘ └──────────────────────┘ └───────────────────────┘

Examples:
    >>> from bulkspine.core.dialect import get_dialect
    >>> d = get_dialect("mssql")
    >>> d.quote("Price")
    '[Price]'
    >>> d.insert_hint()
    'WITH (TABLOCK)'

Tags:
    dialect, sql, merge, staging, portability, bulk-spine
"""

from __future__ import annotations

import secrets
from typing import Any, Protocol, runtime_checkable

from bulkspine.core.errors import InvalidConfigError


@runtime_checkable
class Dialect(Protocol):
    """SQL dialect contract used by the bulk engines.

    Every method returns a **SQL fragment** or statement valid for the
    target database.  Identifiers passed in are unquoted store-side names;
    schema-qualified table names use a dot (``sales.orders``).
    """

    @property
    def name(self) -> str:
        """SQLAlchemy dialect name (e.g. ``'sqlite'``)."""
        ...

    def quote(self, identifier: str) -> str:
        """Quote an identifier, quoting each part of a dotted name."""
        ...

    def staging_table_name(self, table: str) -> str:
        """Unique name for a staging table that shadows *table*."""
        ...

    def staging_prefixes(self) -> list[str]:
        """``CREATE`` prefixes for the staging table (e.g. ``TEMPORARY``)."""
        ...

    def merge_update(
        self,
        target: str,
        staging: str,
        key_columns: list[str],
        data_columns: list[str],
    ) -> str:
        """Update-only merge of *staging* into *target* joined on the keys."""
        ...

    def table_lock_statement(self, table: str) -> str | None:
        """Statement that takes a table-level write lock, if one is needed."""
        ...

    def insert_hint(self) -> str | None:
        """Table hint rendered into bulk ``INSERT`` statements, if any."""
        ...


def _staging_base(table: str) -> str:
    base = table.rsplit(".", 1)[-1].strip('"[]#')
    return f"_staging_{base}_{secrets.token_hex(4)}"


# =========================================================================


class SQLiteDialect:
    """SQLite dialect: temporary staging, correlated ``UPDATE``.

    SQLite locks the whole database for a writer, so no table-level lock
    statement or hint is emitted.
    """

    @property
    def name(self) -> str:
        return "sqlite"

    def quote(self, identifier: str) -> str:
        return ".".join('"' + part.replace('"', '""') + '"' for part in identifier.split("."))

    def staging_table_name(self, table: str) -> str:
        return _staging_base(table)

    def staging_prefixes(self) -> list[str]:
        return ["TEMPORARY"]

    def merge_update(
        self,
        target: str,
        staging: str,
        key_columns: list[str],
        data_columns: list[str],
    ) -> str:
        # UPDATE cannot alias its target here, correlate on the bare name
        ref = self.quote(target.rsplit(".", 1)[-1])
        join = " AND ".join(
            f"Source.{self.quote(k)} = {ref}.{self.quote(k)}" for k in key_columns
        )
        sets = ", ".join(
            f"{self.quote(c)} = (SELECT Source.{self.quote(c)} "
            f"FROM {self.quote(staging)} AS Source WHERE {join})"
            for c in data_columns
        )
        return (
            f"UPDATE {self.quote(target)} SET {sets} "
            f"WHERE EXISTS (SELECT 1 FROM {self.quote(staging)} AS Source WHERE {join})"
        )

    def table_lock_statement(self, table: str) -> str | None:  # noqa: ARG002
        return None

    def insert_hint(self) -> str | None:
        return None


class PostgreSQLDialect:
    """PostgreSQL dialect: temporary staging, ``UPDATE ... FROM``.

    ``SHARE UPDATE EXCLUSIVE`` is the lock the original ``TABLOCK`` hint
    maps to most closely: it serialises bulk writers without blocking
    readers.
    """

    @property
    def name(self) -> str:
        return "postgresql"

    def quote(self, identifier: str) -> str:
        return ".".join('"' + part.replace('"', '""') + '"' for part in identifier.split("."))

    def staging_table_name(self, table: str) -> str:
        return _staging_base(table)

    def staging_prefixes(self) -> list[str]:
        return ["TEMPORARY"]

    def merge_update(
        self,
        target: str,
        staging: str,
        key_columns: list[str],
        data_columns: list[str],
    ) -> str:
        sets = ", ".join(f"{self.quote(c)} = Source.{self.quote(c)}" for c in data_columns)
        join = " AND ".join(
            f"Target.{self.quote(k)} = Source.{self.quote(k)}" for k in key_columns
        )
        return (
            f"UPDATE {self.quote(target)} AS Target SET {sets} "
            f"FROM {self.quote(staging)} AS Source WHERE {join}"
        )

    def table_lock_statement(self, table: str) -> str | None:
        return f"LOCK TABLE {self.quote(table)} IN SHARE UPDATE EXCLUSIVE MODE"

    def insert_hint(self) -> str | None:
        return None


class MSSQLDialect:
    """SQL Server dialect: ``#`` staging table, ``MERGE``, ``TABLOCK``."""

    @property
    def name(self) -> str:
        return "mssql"

    def quote(self, identifier: str) -> str:
        return ".".join("[" + part.replace("]", "]]") + "]" for part in identifier.split("."))

    def staging_table_name(self, table: str) -> str:
        return "#" + _staging_base(table)

    def staging_prefixes(self) -> list[str]:
        # '#' already makes the table session-local
        return []

    def merge_update(
        self,
        target: str,
        staging: str,
        key_columns: list[str],
        data_columns: list[str],
    ) -> str:
        join = " AND ".join(
            f"Target.{self.quote(k)} = Source.{self.quote(k)}" for k in key_columns
        )
        sets = ", ".join(
            f"Target.{self.quote(c)} = Source.{self.quote(c)}" for c in data_columns
        )
        return (
            f"MERGE INTO {self.quote(target)} AS Target "
            f"USING {self.quote(staging)} AS Source ON {join} "
            f"WHEN MATCHED THEN UPDATE SET {sets};"
        )

    def table_lock_statement(self, table: str) -> str | None:  # noqa: ARG002
        return None

    def insert_hint(self) -> str | None:
        return "WITH (TABLOCK)"


# =========================================================================
# Registry / Factory
# =========================================================================

# Pre-instantiated singletons (dialects are stateless)
_DIALECTS: dict[str, Dialect] = {
    "sqlite": SQLiteDialect(),
    "postgresql": PostgreSQLDialect(),
    "postgres": PostgreSQLDialect(),  # alias
    "mssql": MSSQLDialect(),
}


def get_dialect(db_type: str) -> Dialect:
    """Get a dialect by database type name.

    Raises:
        InvalidConfigError: If ``db_type`` is not recognised.
    """
    key = db_type.lower()
    if key not in _DIALECTS:
        raise InvalidConfigError(
            "dialect",
            db_type,
            f"Unknown dialect '{db_type}'. "
            f"Supported: {sorted(set(_DIALECTS) - {'postgres'})}"
        )
    return _DIALECTS[key]


def dialect_for(bind: Any) -> Dialect:
    """Get the dialect for a SQLAlchemy ``Engine`` or ``Connection``."""
    return get_dialect(bind.dialect.name)


def register_dialect(name: str, dialect: Dialect) -> None:
    """Register a custom dialect implementation.

    Useful for third-party database drivers or test doubles.
    """
    _DIALECTS[name.lower()] = dialect


__all__ = [
    "Dialect",
    "SQLiteDialect",
    "PostgreSQLDialect",
    "MSSQLDialect",
    "get_dialect",
    "dialect_for",
    "register_dialect",
]
