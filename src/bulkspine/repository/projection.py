"""
Typed column projection.

``Projection(model, fields)`` checks every requested name against the
row type's descriptor when it is built.  An unknown name raises
``ProjectionError`` right there, so no statement is ever compiled, let
alone sent, for a bad projection.  A valid projection carries a frozen
pydantic record type named ``<Model>Projection`` with one field per
requested column.

Examples:
    >>> projection = Projection(Product, ["id", "name"])
    >>> projection.record_type.__name__
    'ProductProjection'
    >>> Projection(Product, ["nope"])
    Traceback (most recent call last):
    ...
    ProjectionError: Unknown projection field(s) for Product: nope
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from pydantic import BaseModel, ConfigDict, create_model
from sqlalchemy import Select, select

from bulkspine.bulk.schema import ColumnDescriptor, describe
from bulkspine.core.errors import ProjectionError


class Projection:
    """A validated set of columns of *model* and the record type they map to."""

    def __init__(self, model: type, fields: Iterable[str]):
        self.model = model
        requested = list(dict.fromkeys(fields))
        if not requested:
            raise ProjectionError(
                f"Projection of {model.__name__} needs at least one field", field="fields"
            )

        descriptor = describe(model)
        resolved: list[ColumnDescriptor] = []
        unresolved: list[str] = []
        for name in requested:
            column = descriptor.resolve(name)
            if column is None:
                unresolved.append(name)
            else:
                resolved.append(column)
        if unresolved:
            raise ProjectionError(
                f"Unknown projection field(s) for {model.__name__}: {', '.join(unresolved)}",
                unresolved=unresolved,
            ).with_context(row_type=model.__name__)

        self.columns: tuple[ColumnDescriptor, ...] = tuple(resolved)
        self.record_type: type[BaseModel] = create_model(
            f"{model.__name__}Projection",
            __config__=ConfigDict(frozen=True),
            **{
                c.key: ((c.python_type | None, None) if c.nullable else (c.python_type, ...))
                for c in self.columns
            },
        )

    @property
    def field_names(self) -> list[str]:
        return [c.key for c in self.columns]

    def statement(self) -> Select:
        """``SELECT`` of the projected columns, labelled by attribute name."""
        return select(*(getattr(self.model, c.key).label(c.key) for c in self.columns))

    def to_record(self, row: Any) -> BaseModel:
        return self.record_type(**dict(row._mapping))

    def __repr__(self) -> str:
        return f"Projection({self.model.__name__}, {self.field_names})"


__all__ = ["Projection"]
