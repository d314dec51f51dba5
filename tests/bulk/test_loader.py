"""Tests for the native bulk-load strategies."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import MagicMock

from sqlalchemy import text
from sqlalchemy.dialects import postgresql

from bulkspine.bulk.loader import (
    CopyLoader,
    ExecutemanyLoader,
    RowBuffer,
    _copy_text,
    select_loader,
)
from bulkspine.bulk.schema import describe
from tests._support.models import Category, Product, make_products


class TestRowBuffer:
    def test_from_rows_keeps_order_and_names(self) -> None:
        rows = make_products(3)
        buffer = RowBuffer.from_rows(describe(Product), rows)
        assert "Name" in buffer.columns
        name_at = buffer.columns.index("Name")
        assert [r[name_at] for r in buffer.rows] == ["product-0000", "product-0001", "product-0002"]
        assert len(buffer) == 3

    def test_merge_columns(self) -> None:
        d = describe(Product)
        buffer = RowBuffer.from_rows(d, make_products(1), d.merge_columns)
        assert buffer.columns[0] == "id"

    def test_batches(self) -> None:
        buffer = RowBuffer.from_rows(describe(Product), make_products(5))
        assert [len(b) for b in buffer.batches(2)] == [2, 2, 1]
        assert [len(b) for b in buffer.batches(None)] == [5]

    def test_empty_batches(self) -> None:
        buffer = RowBuffer.from_rows(describe(Product), [])
        assert list(buffer.batches(None)) == []


class TestExecutemanyLoader:
    def test_loads_rows(self, engine) -> None:
        buffer = RowBuffer.from_rows(describe(Product), make_products(7))
        with engine.begin() as conn:
            written = ExecutemanyLoader().load(conn, "products", buffer, batch_size=3)
        assert written == 7
        with engine.connect() as conn:
            rows = conn.execute(text('SELECT "Name", category FROM products ORDER BY id')).all()
        assert rows[0] == ("product-0000", "BOOKS")
        assert len(rows) == 7

    def test_uses_column_types(self, engine) -> None:
        buffer = RowBuffer.from_rows(describe(Product), make_products(1, price="12.50"))
        with engine.begin() as conn:
            ExecutemanyLoader().load(conn, "products", buffer)
        with engine.connect() as conn:
            price = conn.execute(text("SELECT price FROM products")).scalar()
        assert Decimal(str(price)) == Decimal("12.50")

    def test_empty_buffer_is_noop(self) -> None:
        conn = MagicMock()
        buffer = RowBuffer.from_rows(describe(Product), [])
        assert ExecutemanyLoader().load(conn, "products", buffer) == 0
        conn.execute.assert_not_called()


class TestCopyLoader:
    def _conn(self) -> MagicMock:
        conn = MagicMock()
        conn.dialect = postgresql.dialect()
        return conn

    def test_copy_statement_and_payload(self) -> None:
        conn = self._conn()
        cursor = conn.connection.dbapi_connection.cursor.return_value
        payloads = []
        cursor.copy_expert.side_effect = lambda sql, stream: payloads.append((sql, stream.read()))

        product = Product(name="tab\there", price=Decimal("1.50"), category=Category.TOOLS)
        buffer = RowBuffer.from_rows(describe(Product), [product])
        written = CopyLoader().load(conn, "products", buffer, batch_size=100)

        assert written == 1
        conn.exec_driver_sql.assert_called_once_with(
            'LOCK TABLE "products" IN SHARE UPDATE EXCLUSIVE MODE'
        )
        sql, data = payloads[0]
        assert sql.startswith('COPY "products" (')
        assert sql.endswith(") FROM STDIN WITH (FORMAT text)")
        fields = data.rstrip("\n").split("\t")
        values = dict(zip(buffer.columns, fields))
        assert values["Name"] == "tab\\there"
        assert values["price"] == "1.50"
        assert values["category"] == "TOOLS"
        assert values["created_at"] == "\\N"
        cursor.close.assert_called_once()

    def test_one_copy_per_batch(self) -> None:
        conn = self._conn()
        cursor = conn.connection.dbapi_connection.cursor.return_value
        buffer = RowBuffer.from_rows(describe(Product), make_products(5))
        CopyLoader().load(conn, "products", buffer, batch_size=2)
        assert cursor.copy_expert.call_count == 3


class TestCopyText:
    def test_escapes(self) -> None:
        assert _copy_text(None) == "\\N"
        assert _copy_text(True) == "t"
        assert _copy_text("a\\b\nc\rd") == "a\\\\b\\nc\\rd"


class TestSelectLoader:
    def test_sqlite_uses_executemany(self, engine) -> None:
        assert isinstance(select_loader(engine), ExecutemanyLoader)

    def test_psycopg2_uses_copy(self) -> None:
        bind = MagicMock()
        bind.dialect = postgresql.dialect()
        assert isinstance(select_loader(bind), CopyLoader)
