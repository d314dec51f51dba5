"""bulk-spine core -- errors, results, configuration and database plumbing.

Architecture::

    Layer 1 -- Type System & Errors
        errors.py          Structured error hierarchy (SpineError, MergeError, ...)
        result.py          Result[T] envelope (Ok / Err / partition_results)
        enums.py           DeletionPolicy, QueryOrder, MergeStep
        timestamps.py      UTC helpers and time-zone clocks (stdlib-only)

    Layer 2 -- Configuration & Logging
        settings.py        BulkSpineSettings (pydantic-settings)
        logging.py         structlog configuration

    Layer 3 -- Database
        dialect.py         Staging / merge / lock SQL per backend
        connection.py      Engine factory and connection-source resolution
        orm/               Declarative base, mixins, session + stamping
"""

from bulkspine.core.enums import DeletionPolicy, MergeStep, QueryOrder
from bulkspine.core.errors import (
    BulkInsertError,
    ChunkLoadError,
    ConfigError,
    DatabaseError,
    ErrorCategory,
    ErrorContext,
    MergeError,
    ProjectionError,
    SchemaError,
    SpineError,
    ValidationError,
)
from bulkspine.core.result import Err, Ok, Result, partition_results

__all__ = [
    "DeletionPolicy",
    "MergeStep",
    "QueryOrder",
    "BulkInsertError",
    "ChunkLoadError",
    "ConfigError",
    "DatabaseError",
    "ErrorCategory",
    "ErrorContext",
    "MergeError",
    "ProjectionError",
    "SchemaError",
    "SpineError",
    "ValidationError",
    "Err",
    "Ok",
    "Result",
    "partition_results",
]
