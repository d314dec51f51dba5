"""Tests for row-type descriptors."""

from __future__ import annotations

import pytest

from bulkspine.bulk.schema import (
    clear_descriptor_cache,
    describe,
    register_row_types,
)
from bulkspine.core.enums import DeletionPolicy
from bulkspine.core.errors import SchemaError
from tests._support.models import ArchivedProduct, Blob, Category, Customer, Document, Product


class TestColumnSelection:
    def test_key_is_held_apart(self) -> None:
        d = describe(Product)
        assert [c.name for c in d.key_columns] == ["id"]
        assert "id" not in d.column_names

    def test_declaration_order_and_name_override(self) -> None:
        names = [n for n in describe(Product).column_names if n in {"Name", "price", "category"}]
        assert names == ["Name", "price", "category"]

    def test_not_persisted_excluded(self) -> None:
        assert "note" not in describe(Product).column_names

    def test_collection_excluded(self) -> None:
        assert "tags" not in describe(Product).column_names

    def test_mixin_columns_included(self) -> None:
        assert {"created_at", "updated_at"} <= set(describe(Product).column_names)

    def test_column_metadata(self) -> None:
        column = describe(Product).resolve("category")
        assert column is not None
        assert column.python_type is Category
        assert column.nullable is False
        note = describe(Product).resolve("created_at")
        assert note is not None and note.nullable is True

    def test_merge_columns_key_first(self) -> None:
        d = describe(Product)
        assert d.merge_columns[0].name == "id"
        assert len(d.merge_columns) == len(d.columns) + 1


class TestTableName:
    def test_mapped_name(self) -> None:
        assert describe(Product).table_name == "products"

    def test_explicit_override_wins(self) -> None:
        assert describe(ArchivedProduct).table_name == "products_archive"


class TestDeletionPolicy:
    def test_policies(self) -> None:
        assert describe(Product).deletion_policy is DeletionPolicy.HARD
        assert describe(Customer).deletion_policy is DeletionPolicy.SOFT


class TestResolve:
    def test_by_attribute_and_store_name(self) -> None:
        d = describe(Product)
        assert d.resolve("name") is d.resolve("Name")
        assert d.resolve("id") is not None

    def test_unknown(self) -> None:
        d = describe(Product)
        assert d.resolve("note") is None
        assert d.resolve("missing") is None

    def test_values(self) -> None:
        product = Product(name="pen", price=1, category=Category.BOOKS)
        d = describe(Product)
        values = dict(zip(d.column_names, d.values(product)))
        assert values["Name"] == "pen"
        assert values["category"] is Category.BOOKS


class TestFailures:
    def test_no_data_columns(self) -> None:
        with pytest.raises(SchemaError, match="no persisted data columns") as exc_info:
            describe(Document)
        assert exc_info.value.context.row_type == "Document"

    def test_unmapped_class(self) -> None:
        class Plain:
            pass

        with pytest.raises(SchemaError, match="not a mapped row type"):
            describe(Plain)

    def test_binary_key_is_not_a_key(self) -> None:
        assert describe(Blob).key_columns == ()


class TestCache:
    def test_cached_per_type(self) -> None:
        assert describe(Product) is describe(Product)

    def test_clear(self) -> None:
        first = describe(Product)
        clear_descriptor_cache()
        assert describe(Product) is not first
        assert describe(Product) == first

    def test_register_row_types(self) -> None:
        descriptors = register_row_types(Product, Customer)
        assert [d.table_name for d in descriptors] == ["products", "customers"]

    def test_register_surfaces_schema_errors(self) -> None:
        with pytest.raises(SchemaError):
            register_row_types(Product, Document)
