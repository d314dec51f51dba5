"""
Structured error types for bulk-spine.

Every failure the data-access layer can surface is a :class:`SpineError`
subclass carrying a category, an explicit retry flag, structured context
(row type, table, chunk, step) and the chained driver exception.

Manifesto:
    - **Typed hierarchy:** Precondition failures (schema, projection) are
      distinct from I/O failures (chunk load, merge)
    - **No hidden retries:** Nothing in the core is retryable; retry policy
      belongs to the caller
    - **Rich context:** Errors know which table, chunk or merge step failed
    - **Error chaining:** The original driver exception is kept as ``cause``

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        SpineError                             │
        │      (category, retryable, context, cause)                    │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ValidationError        ConfigError         DatabaseError     │
        │  (VALIDATION)           (CONFIG)            (DATABASE)        │
        │       │                      │                   │            │
        │  SchemaError           InvalidConfigError   ChunkLoadError    │
        │  ProjectionError                            BulkInsertError   │
        │                                             MergeError        │
        └──────────────────────────────────────────────────────────────┘

Examples:
    >>> error = SchemaError("no persisted columns").with_context(table="items")
    >>> error.context.table
    'items'
    >>> error.retryable
    False

Tags:
    error-handling, exception-hierarchy, error-context, bulk-spine
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error categories used for classification and log routing."""

    # Infrastructure
    DATABASE = "DATABASE"         # Connection, load, merge, commit

    # Caller/data errors
    VALIDATION = "VALIDATION"     # Schema, projection, arguments
    CONFIG = "CONFIG"             # Invalid settings

    # Internal
    INTERNAL = "INTERNAL"
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set end up in :meth:`to_dict`, so the same
    context class serves the schema layer (``row_type``), the insert path
    (``table``, ``chunk_index``) and the update path (``table``, ``step``).

    Attributes:
        row_type: Name of the mapped row type involved
        table: Target table name
        chunk_index: Zero-based index of the failed insert chunk
        step: Update-path step that failed (see ``MergeStep``)
        operation: Repository/engine operation name
        metadata: Additional key-value pairs
    """

    row_type: str | None = None
    table: str | None = None
    chunk_index: int | None = None
    step: str | None = None
    operation: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["row_type", "table", "chunk_index", "step", "operation"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class SpineError(Exception):
    """
    Base exception for all bulk-spine errors.

    Subclasses set ``default_category`` and ``default_retryable``; callers
    may override both per instance. When ``cause`` is given it is also set
    as ``__cause__`` so tracebacks show the driver error.

    Examples:
        >>> try:
        ...     raise OSError("connection reset")
        ... except OSError as e:
        ...     error = DatabaseError("load failed", cause=e)
        >>> error.cause
        OSError('connection reset')
        >>> error.to_dict()["category"]
        'DATABASE'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> SpineError:
        """
        Add context to this error (fluent API).

        Usage:
            raise SchemaError("no columns").with_context(row_type="Product")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# VALIDATION ERRORS (raised before any I/O)
# =============================================================================


class ValidationError(SpineError):
    """
    Caller-side validation error.

    Never retryable - the input or the row type must be fixed.
    """

    default_category = ErrorCategory.VALIDATION
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        value: Any = None,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.field = field
        self.value = value

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.field:
            result["field"] = self.field
        if self.value is not None:
            result["value"] = repr(self.value)
        return result


class SchemaError(ValidationError):
    """A row type cannot be described (unmapped, no persisted columns, no key)."""

    pass


class ProjectionError(ValidationError):
    """One or more requested projection fields do not resolve."""

    def __init__(self, message: str, *, unresolved: list[str] | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.unresolved = unresolved or []

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        if self.unresolved:
            result["unresolved"] = list(self.unresolved)
        return result


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(SpineError):
    """Configuration error."""

    default_category = ErrorCategory.CONFIG
    default_retryable = False


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}")


# =============================================================================
# DATABASE ERRORS (I/O)
# =============================================================================


class DatabaseError(SpineError):
    """Database statement or transaction error."""

    default_category = ErrorCategory.DATABASE
    default_retryable = False


class ChunkLoadError(DatabaseError):
    """
    A single insert-path chunk failed and was rolled back.

    Other chunks are unaffected: some may already have committed.
    """

    def __init__(self, message: str, *, chunk_index: int, rows: int, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.chunk_index = chunk_index
        self.rows = rows
        self.context.chunk_index = chunk_index

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["rows"] = self.rows
        return result


class BulkInsertError(DatabaseError):
    """
    One or more chunks of a bulk insert failed.

    The insert path is not atomic across chunks: ``committed_chunks`` lists
    the chunk indexes whose rows are durably in the target table. Callers
    must treat the operation as at-least-partially applied.
    """

    def __init__(
        self,
        message: str,
        *,
        failures: list[ChunkLoadError],
        committed_chunks: list[int],
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.failures = failures
        self.committed_chunks = committed_chunks
        if failures and self.cause is None:
            self.cause = failures[0]
            self.__cause__ = failures[0]

    @property
    def failed_chunks(self) -> list[int]:
        return [failure.chunk_index for failure in self.failures]

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["failed_chunks"] = self.failed_chunks
        result["committed_chunks"] = list(self.committed_chunks)
        return result


class MergeError(DatabaseError):
    """The update path failed; the whole transaction was rolled back."""

    def __init__(self, message: str, *, step: str, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.step = step
        self.context.step = step


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "SpineError",
    "ValidationError",
    "SchemaError",
    "ProjectionError",
    "ConfigError",
    "InvalidConfigError",
    "DatabaseError",
    "ChunkLoadError",
    "BulkInsertError",
    "MergeError",
]
