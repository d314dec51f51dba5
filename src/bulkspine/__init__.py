"""
bulk-spine - bulk data sync and a generic repository for SQLAlchemy.

- ``BulkInsertEngine``  parallel chunked insert, one transaction per chunk
- ``BulkUpdateEngine``  staging table + merge, one atomic transaction
- ``GenericRepository`` CRUD, projection, ordering and pagination
"""

__version__ = "0.1.0"

from bulkspine.bulk import (
    BulkInsertEngine,
    BulkUpdateEngine,
    InsertReport,
    RowTypeDescriptor,
    UpdateReport,
    describe,
    register_row_types,
    split,
)
from bulkspine.core.enums import DeletionPolicy, QueryOrder
from bulkspine.core.errors import (
    BulkInsertError,
    ChunkLoadError,
    MergeError,
    ProjectionError,
    SchemaError,
    SpineError,
)
from bulkspine.core.orm import NOT_PERSISTED, BulkBase, SoftDeleteMixin, TimestampMixin
from bulkspine.core.result import Err, Ok, Result
from bulkspine.core.settings import BulkSpineSettings, get_settings
from bulkspine.repository import GenericRepository, PaginatedResult, Projection

__all__ = [
    "BulkInsertEngine",
    "BulkUpdateEngine",
    "InsertReport",
    "RowTypeDescriptor",
    "UpdateReport",
    "describe",
    "register_row_types",
    "split",
    "DeletionPolicy",
    "QueryOrder",
    "BulkInsertError",
    "ChunkLoadError",
    "MergeError",
    "ProjectionError",
    "SchemaError",
    "SpineError",
    "NOT_PERSISTED",
    "BulkBase",
    "SoftDeleteMixin",
    "TimestampMixin",
    "Err",
    "Ok",
    "Result",
    "BulkSpineSettings",
    "get_settings",
    "GenericRepository",
    "PaginatedResult",
    "Projection",
]
