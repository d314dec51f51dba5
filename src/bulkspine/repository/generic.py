"""
Generic repository over one row type.

``GenericRepository`` wraps a SQLAlchemy session for a single mapped
class and offers:

- CRUD that commits after every call (``insert``, ``update``, ``delete``
  and their ``*_range`` forms);
- filtered queries taking plain SQLAlchemy criteria (``*criteria`` are
  ANDed) and loader ``options=``;
- validated column projections returning frozen pydantic records;
- offset pagination (see :mod:`bulkspine.repository.pagination` for the
  clamp it applies);
- ``insert_bulk`` / ``update_bulk`` delegating to the bulk engines.

Deletion follows the row type's ``__deletion_policy__``, read on every
call: ``SOFT`` stamps ``deleted_at`` with the repository clock and saves
the row, ``HARD`` removes it.  Soft-deleted rows are excluded from every
query the repository builds.

Examples:
    >>> repo = GenericRepository(Product, session)
    >>> repo.insert(Product(name="pen", price=Decimal("1.50")))
    >>> page = repo.paginate(0, 10, Product.price > 1)
    >>> page.total_pages
    1
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import ColumnElement, Select, func, inspect, select
from sqlalchemy.orm import Session

from bulkspine.bulk.insert import BulkInsertEngine, InsertReport
from bulkspine.bulk.schema import RowTypeDescriptor, describe
from bulkspine.bulk.update import BulkUpdateEngine, UpdateReport
from bulkspine.core.enums import DeletionPolicy, QueryOrder
from bulkspine.core.errors import ValidationError
from bulkspine.core.logging import LogContext, get_logger
from bulkspine.core.settings import BulkSpineSettings, get_settings
from bulkspine.core.timestamps import Clock, make_clock
from bulkspine.repository.pagination import PaginatedResult, clamp_offset
from bulkspine.repository.projection import Projection

logger = get_logger(__name__)

M = TypeVar("M")


class GenericRepository(Generic[M]):
    """CRUD, query, projection and pagination for one row type."""

    def __init__(
        self,
        model: type[M],
        session: Session,
        *,
        settings: BulkSpineSettings | None = None,
        clock: Clock | None = None,
    ):
        self.model = model
        self.session = session
        self._settings = settings or get_settings()
        self._clock = clock or make_clock(self._settings.tzinfo)

    def __enter__(self) -> GenericRepository[M]:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    @property
    def descriptor(self) -> RowTypeDescriptor:
        return describe(self.model)

    @property
    def deletion_policy(self) -> DeletionPolicy:
        return getattr(self.model, "__deletion_policy__", DeletionPolicy.HARD)

    # ── Writes ─────────────────────────────────────────────────────────

    def insert(self, model: M) -> M:
        self.session.add(model)
        self.session.commit()
        return model

    def insert_range(self, models: Iterable[M]) -> list[M]:
        models = list(models)
        self.session.add_all(models)
        self.session.commit()
        return models

    def update(self, model: M) -> M:
        merged = self.session.merge(model)
        self.session.commit()
        return merged

    def update_range(self, models: Iterable[M]) -> list[M]:
        merged = [self.session.merge(model) for model in models]
        self.session.commit()
        return merged

    def delete(self, model: M) -> None:
        self.delete_range([model])

    def delete_range(self, models: Iterable[M]) -> None:
        """Delete *models* according to the row type's deletion policy."""
        models = list(models)
        if self.deletion_policy is DeletionPolicy.SOFT:
            now = self._clock()
            for model in models:
                model.deleted_at = now
                self.session.merge(model)
        else:
            for model in models:
                self.session.delete(model if model in self.session else self.session.merge(model))
        self.session.commit()
        logger.debug(
            "repository.delete",
            row_type=self.model.__name__,
            rows=len(models),
            policy=self.deletion_policy.value,
        )

    # ── Queries ────────────────────────────────────────────────────────

    def _filtered(self, stmt: Select, *criteria: ColumnElement[bool]) -> Select:
        if self.deletion_policy is DeletionPolicy.SOFT:
            stmt = stmt.where(self.model.deleted_at.is_(None))
        if criteria:
            stmt = stmt.where(*criteria)
        return stmt

    def query(self, *criteria: ColumnElement[bool], options: Sequence[Any] = ()) -> Select:
        """Base ``SELECT`` of the row type with the soft-delete filter applied."""
        stmt = self._filtered(select(self.model), *criteria)
        if options:
            stmt = stmt.options(*options)
        return stmt

    def find(self, *criteria: ColumnElement[bool], options: Sequence[Any] = ()) -> M | None:
        return self.session.scalars(self.query(*criteria, options=options).limit(1)).first()

    def get(self, *criteria: ColumnElement[bool], options: Sequence[Any] = ()) -> list[M]:
        return list(self.session.scalars(self.query(*criteria, options=options)))

    def get_with_order(
        self,
        order_by: Any,
        order: QueryOrder = QueryOrder.ASCENDING,
        *criteria: ColumnElement[bool],
        options: Sequence[Any] = (),
    ) -> list[M]:
        stmt = self.query(*criteria, options=options).order_by(*self._ordering(order_by, order))
        return list(self.session.scalars(stmt))

    def count(self, *criteria: ColumnElement[bool]) -> int:
        stmt = select(func.count()).select_from(self.query(*criteria).subquery())
        return self.session.scalar(stmt) or 0

    def exists(self, *criteria: ColumnElement[bool]) -> bool:
        return bool(self.session.scalar(select(self.query(*criteria).exists())))

    def _ordering(self, order_by: Any, order: QueryOrder) -> list[Any]:
        if order_by is None:
            # mapper key; descriptor keys omit non-storable (binary) keys
            columns = list(inspect(self.model).primary_key)
        elif isinstance(order_by, str):
            column = self.descriptor.resolve(order_by)
            if column is None:
                raise ValidationError(
                    f"Unknown order column for {self.model.__name__}: {order_by}",
                    field="order_by",
                    value=order_by,
                )
            columns = [getattr(self.model, column.key)]
        else:
            columns = [order_by]
        if QueryOrder(order) is QueryOrder.DESCENDING:
            return [c.desc() for c in columns]
        return [c.asc() for c in columns]

    # ── Projection ─────────────────────────────────────────────────────

    def find_projected(
        self, fields: Iterable[str], *criteria: ColumnElement[bool]
    ) -> BaseModel | None:
        """First matching row as a ``<Model>Projection`` record."""
        projection = Projection(self.model, fields)
        row = self.session.execute(
            self._filtered(projection.statement(), *criteria).limit(1)
        ).first()
        return projection.to_record(row) if row is not None else None

    def get_projected(
        self,
        fields: Iterable[str],
        *criteria: ColumnElement[bool],
        order_by: Any = None,
        order: QueryOrder = QueryOrder.ASCENDING,
    ) -> list[BaseModel]:
        """Every matching row as a ``<Model>Projection`` record."""
        projection = Projection(self.model, fields)
        stmt = self._filtered(projection.statement(), *criteria)
        if order_by is not None:
            stmt = stmt.order_by(*self._ordering(order_by, order))
        return [projection.to_record(row) for row in self.session.execute(stmt)]

    # ── Pagination ─────────────────────────────────────────────────────

    def paginate(
        self,
        page_number: int,
        page_size: int,
        *criteria: ColumnElement[bool],
        options: Sequence[Any] = (),
    ) -> PaginatedResult[M]:
        """Page of rows ordered by key.  ``page_number`` is a row offset."""
        return self.paginate_with_order(
            page_number, page_size, None, QueryOrder.ASCENDING, *criteria, options=options
        )

    def paginate_with_order(
        self,
        page_number: int,
        page_size: int,
        order_by: Any,
        order: QueryOrder = QueryOrder.ASCENDING,
        *criteria: ColumnElement[bool],
        options: Sequence[Any] = (),
    ) -> PaginatedResult[M]:
        """Page of rows in the requested order.

        Counts first; an empty match returns at once without a second
        query.  Otherwise the offset is clamped with ``clamp_offset``.
        """
        if page_size <= 0:
            raise ValidationError(
                f"page_size must be > 0, got {page_size}", field="page_size", value=page_size
            )
        total = self.count(*criteria)
        if total == 0:
            return PaginatedResult.empty(page_size)

        offset = clamp_offset(page_number, page_size, total)
        stmt = (
            self.query(*criteria, options=options)
            .order_by(*self._ordering(order_by, order))
            .offset(offset)
            .limit(page_size)
        )
        items = list(self.session.scalars(stmt))
        logger.debug(
            "repository.paginate",
            row_type=self.model.__name__,
            requested=page_number,
            offset=offset,
            page_size=page_size,
            total=total,
            returned=len(items),
        )
        return PaginatedResult.from_query(items, offset, page_size, total)

    # ── Bulk ───────────────────────────────────────────────────────────

    def insert_bulk(
        self,
        models: Iterable[M],
        chunk_size: int | None = None,
        max_parallelism: int | None = None,
    ) -> InsertReport:
        """Bulk insert through :class:`BulkInsertEngine`.

        Runs on separate connections from the session's engine.  The
        session is committed first and expired afterwards.

        Raises:
            BulkInsertError: One or more chunks failed; others may have committed.
        """
        self.session.commit()
        with LogContext(operation="insert_bulk", row_type=self.model.__name__):
            result = BulkInsertEngine(self.session, settings=self._settings).insert(
                models,
                row_type=self.model,
                chunk_size=chunk_size,
                max_parallelism=max_parallelism,
            )
        self.session.expire_all()
        return result.unwrap()

    def update_bulk(self, models: Iterable[M]) -> UpdateReport:
        """Atomic bulk update through :class:`BulkUpdateEngine`.

        Raises:
            MergeError: The update was rolled back.
        """
        self.session.commit()
        with LogContext(operation="update_bulk", row_type=self.model.__name__):
            result = BulkUpdateEngine(self.session, settings=self._settings).update(
                models, row_type=self.model
            )
        self.session.expire_all()
        return result.unwrap()


__all__ = ["GenericRepository"]
