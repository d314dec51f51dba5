"""SQLAlchemy ORM layer for bulk-spine row types."""

from bulkspine.core.orm.base import NOT_PERSISTED, BulkBase, SoftDeleteMixin, TimestampMixin
from bulkspine.core.orm.session import (
    BulkSession,
    bulk_session_factory,
    install_timestamp_stamping,
)

__all__ = [
    "NOT_PERSISTED",
    "BulkBase",
    "SoftDeleteMixin",
    "TimestampMixin",
    "BulkSession",
    "bulk_session_factory",
    "install_timestamp_stamping",
]
