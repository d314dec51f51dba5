"""Tests for the ORM layer: base, mixins, session and timestamp stamping."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import event

from bulkspine.core.enums import DeletionPolicy
from bulkspine.core.orm import (
    BulkSession,
    bulk_session_factory,
    install_timestamp_stamping,
)
from tests._support.models import Category, Customer, Product


def fixed_clock(start: datetime):
    ticks = iter(start + timedelta(minutes=i) for i in range(100))
    return lambda: next(ticks)


T0 = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class TestBase:
    def test_default_policy_is_hard(self) -> None:
        assert Product.__deletion_policy__ is DeletionPolicy.HARD

    def test_soft_delete_mixin(self) -> None:
        assert Customer.__deletion_policy__ is DeletionPolicy.SOFT
        assert "deleted_at" in Customer.__table__.columns

    def test_timestamp_columns(self) -> None:
        assert {"created_at", "updated_at"} <= set(Product.__table__.columns.keys())


class TestSession:
    def test_factory_produces_bulk_session(self, engine) -> None:
        session = bulk_session_factory(engine)()
        assert isinstance(session, BulkSession)
        assert session.expire_on_commit is False
        session.close()


class TestTimestampStamping:
    def test_new_objects_get_both_stamps(self, session) -> None:
        install_timestamp_stamping(session, fixed_clock(T0))
        product = Product(name="pen", price=Decimal("1.00"), category=Category.TOOLS)
        session.add(product)
        session.commit()
        assert product.created_at == T0
        assert product.updated_at == T0

    def test_modified_objects_keep_created_at(self, session) -> None:
        install_timestamp_stamping(session, fixed_clock(T0))
        product = Product(name="pen", price=Decimal("1.00"), category=Category.TOOLS)
        session.add(product)
        session.commit()

        product.price = Decimal("2.00")
        session.commit()
        assert product.created_at == T0
        assert product.updated_at == T0 + timedelta(minutes=1)

    def test_merge_cannot_overwrite_created_at(self, session) -> None:
        install_timestamp_stamping(session, fixed_clock(T0))
        product = Product(name="pen", price=Decimal("1.00"), category=Category.TOOLS)
        session.add(product)
        session.commit()

        detached = Product(
            id=product.id, name="pen", price=Decimal("3.00"), category=Category.TOOLS
        )
        merged = session.merge(detached)
        session.commit()
        assert merged.created_at == T0
        assert merged.price == Decimal("3.00")

    def test_listener_can_be_removed(self, session) -> None:
        listener = install_timestamp_stamping(session, fixed_clock(T0))
        event.remove(session, "before_flush", listener)
        product = Product(name="pen", price=Decimal("1.00"), category=Category.TOOLS)
        session.add(product)
        session.commit()
        assert product.created_at is None
