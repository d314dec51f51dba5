"""
Row-type descriptors for the bulk paths and the repository projection.

A *row type* is a ``BulkBase`` declarative class.  Its table metadata,
built by SQLAlchemy when the class is declared, is read once and reduced
to a :class:`RowTypeDescriptor`: the ordered data-carrying columns, the
key columns and the target table name.  Descriptors are immutable and
cached per class for the life of the process.

Column selection, in table declaration order:

1. the column must be mapped to an attribute of the class;
2. ``info=NOT_PERSISTED`` excludes it;
3. primary-key columns go to ``key_columns``, never to ``columns``;
4. collection types (JSON, ARRAY, binary) are excluded, ``str`` is not a
   collection;
5. the column type must map to a storable scalar: ``int``, ``float``,
   ``bool``, ``str``, ``Decimal``, ``datetime``, ``date``, ``time`` or an
   ``Enum``.  A type SQLAlchemy cannot name a Python type for is skipped.

Examples:
    >>> descriptor = describe(Product)
    >>> descriptor.table_name
    'products'
    >>> [c.name for c in descriptor.columns]
    ['Name', 'price', 'category']

Tags:
    schema, introspection, descriptor, bulk-spine
"""

from __future__ import annotations

import datetime
import decimal
import enum
import threading
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Column, inspect
from sqlalchemy.orm import Mapper
from sqlalchemy.types import TypeEngine

from bulkspine.core.enums import DeletionPolicy
from bulkspine.core.errors import SchemaError
from bulkspine.core.logging import get_logger

logger = get_logger(__name__)

_COLLECTION_TYPES: tuple[type, ...] = (list, dict, tuple, set, frozenset, bytes, bytearray)
_SCALAR_TYPES: tuple[type, ...] = (
    int,  # bool is an int
    float,
    str,
    decimal.Decimal,
    datetime.datetime,
    datetime.date,
    datetime.time,
    enum.Enum,
)


@dataclass(frozen=True)
class ColumnDescriptor:
    """One persisted column of a row type."""

    name: str
    """Store-side column name."""

    key: str
    """Attribute name on the row type."""

    store_type: TypeEngine
    nullable: bool
    python_type: type
    primary_key: bool = False


@dataclass(frozen=True)
class RowTypeDescriptor:
    """Immutable description of a row type, built once per class."""

    row_type: type
    table_name: str
    columns: tuple[ColumnDescriptor, ...]
    key_columns: tuple[ColumnDescriptor, ...] = ()
    deletion_policy: DeletionPolicy = DeletionPolicy.HARD
    _by_name: dict[str, ColumnDescriptor] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        for column in self.merge_columns:
            self._by_name.setdefault(column.key, column)
            self._by_name.setdefault(column.name, column)

    @property
    def merge_columns(self) -> tuple[ColumnDescriptor, ...]:
        """Key columns followed by data columns (the staging-table shape)."""
        return self.key_columns + self.columns

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def resolve(self, name: str) -> ColumnDescriptor | None:
        """Find a column by attribute name or store-side name."""
        return self._by_name.get(name)

    def values(self, row: Any, columns: tuple[ColumnDescriptor, ...] | None = None) -> tuple:
        """Read *columns* (default: data columns) from *row*, in order."""
        return tuple(getattr(row, c.key) for c in (columns or self.columns))


# ── Introspection ───────────────────────────────────────────────────────


def _python_type(store_type: TypeEngine) -> type | None:
    try:
        return store_type.python_type
    except NotImplementedError:
        return None


def _is_storable(python_type: type | None) -> bool:
    if python_type is None or not isinstance(python_type, type):
        return False
    if issubclass(python_type, str):
        return True
    if issubclass(python_type, _COLLECTION_TYPES):
        return False
    return issubclass(python_type, _SCALAR_TYPES)


def _table_name(row_type: type, mapper: Mapper) -> str:
    explicit = getattr(row_type, "__table_name__", None)
    if explicit:
        return explicit
    table = mapper.local_table
    name = getattr(table, "fullname", None)
    return name or row_type.__name__


def _build(row_type: type) -> RowTypeDescriptor:
    mapper = inspect(row_type, raiseerr=False)
    if not isinstance(mapper, Mapper):
        raise SchemaError(
            f"{getattr(row_type, '__name__', row_type)!s} is not a mapped row type"
        ).with_context(row_type=getattr(row_type, "__name__", str(row_type)))

    attribute_of: dict[Column, str] = {}
    for prop in mapper.column_attrs:
        for col in prop.columns:
            attribute_of.setdefault(col, prop.key)

    columns: list[ColumnDescriptor] = []
    keys: list[ColumnDescriptor] = []
    for col in mapper.local_table.columns:
        attr = attribute_of.get(col)
        if attr is None:
            continue
        if col.info.get("persisted", True) is False:
            continue
        python_type = _python_type(col.type)
        if not _is_storable(python_type):
            continue
        descriptor = ColumnDescriptor(
            name=col.name,
            key=attr,
            store_type=col.type,
            nullable=bool(col.nullable),
            python_type=python_type,
            primary_key=col.primary_key,
        )
        (keys if col.primary_key else columns).append(descriptor)

    table_name = _table_name(row_type, mapper)
    if not columns:
        raise SchemaError(
            f"{row_type.__name__} has no persisted data columns"
        ).with_context(row_type=row_type.__name__, table=table_name)

    return RowTypeDescriptor(
        row_type=row_type,
        table_name=table_name,
        columns=tuple(columns),
        key_columns=tuple(keys),
        deletion_policy=getattr(row_type, "__deletion_policy__", DeletionPolicy.HARD),
    )


_cache: dict[type, RowTypeDescriptor] = {}
_cache_lock = threading.Lock()


def describe(row_type: type) -> RowTypeDescriptor:
    """Return the cached descriptor for *row_type*, building it on first use.

    Raises:
        SchemaError: The class is not mapped or has no persisted data columns.
    """
    descriptor = _cache.get(row_type)
    if descriptor is not None:
        return descriptor
    with _cache_lock:
        descriptor = _cache.get(row_type)
        if descriptor is None:
            descriptor = _build(row_type)
            _cache[row_type] = descriptor
            logger.debug(
                "bulk.schema.described",
                row_type=row_type.__name__,
                table=descriptor.table_name,
                columns=descriptor.column_names,
            )
    return descriptor


def target_table(row_type: type | None, table_name: str | None = None) -> str:
    """Table a bulk call writes to: *table_name*, else the row type's table, else ``""``."""
    if table_name:
        return table_name
    return describe(row_type).table_name if row_type is not None else ""


def register_row_types(*row_types: type) -> list[RowTypeDescriptor]:
    """Describe every row type up front so schema errors surface at startup."""
    return [describe(row_type) for row_type in row_types]


def clear_descriptor_cache() -> None:
    """Forget every cached descriptor (used by tests)."""
    with _cache_lock:
        _cache.clear()


__all__ = [
    "ColumnDescriptor",
    "RowTypeDescriptor",
    "describe",
    "register_row_types",
    "clear_descriptor_cache",
    "target_table",
]
