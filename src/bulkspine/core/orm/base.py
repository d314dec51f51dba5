"""Declarative base, mixins and type-map for bulk-spine row types.

Uses SQLAlchemy 2.0 ``DeclarativeBase`` with a ``type_annotation_map``
that maps Python built-in types to portable SA column types.  The table
metadata SQLAlchemy builds when a row type is declared is the column list
the bulk engines and the repository read; nothing inspects instances at
call time.

Mixins
------
* **TimestampMixin**  — ``created_at`` / ``updated_at`` stamped by the session.
* **SoftDeleteMixin** — ``deleted_at`` and the ``SOFT`` deletion policy.

Markers
-------
* ``NOT_PERSISTED`` — pass as ``info=`` to keep a mapped column out of the
  bulk load and the merge.
"""

from __future__ import annotations

import datetime
import decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Integer, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from bulkspine.core.enums import DeletionPolicy

NOT_PERSISTED: dict[str, Any] = {"persisted": False}


class BulkBase(DeclarativeBase):
    """Shared declarative base for every bulk-spine row type.

    ``type_annotation_map`` lets Mapped columns use plain Python types and
    automatically resolve to the right SA column type:

    * ``str``   → ``String``
    * ``int``   → ``Integer``
    * ``bool``  → ``Boolean``
    * ``Decimal`` → ``Numeric(18, 4)``
    * ``datetime.datetime`` → ``DateTime(timezone=True)``
    * ``dict`` / ``list`` → ``JSON`` (never bulk-loaded, see ``bulk.schema``)

    Class-level hooks read by the bulk layer:

    * ``__table_name__``      — explicit target table override
    * ``__deletion_policy__`` — ``DeletionPolicy.HARD`` unless overridden
    """

    type_annotation_map = {
        str: String,
        int: Integer,
        bool: Boolean,
        decimal.Decimal: Numeric(18, 4),
        datetime.datetime: DateTime(timezone=True),
        dict: JSON,
        list: JSON,
    }

    __deletion_policy__ = DeletionPolicy.HARD


class TimestampMixin:
    """Mixin that adds ``created_at`` and ``updated_at``.

    Values come from the clock installed with
    :func:`bulkspine.core.orm.session.install_timestamp_stamping`, so they
    follow the configured time zone instead of the database server's.
    """

    created_at: Mapped[datetime.datetime | None] = mapped_column(nullable=True)
    updated_at: Mapped[datetime.datetime | None] = mapped_column(nullable=True)


class SoftDeleteMixin:
    """Mixin for row types that are deleted logically.

    The repository stamps ``deleted_at`` instead of removing the row and
    hides stamped rows from every query.
    """

    __deletion_policy__ = DeletionPolicy.SOFT

    deleted_at: Mapped[datetime.datetime | None] = mapped_column(nullable=True, default=None)
