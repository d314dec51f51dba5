"""
Result envelope for bulk operations.

Bulk engines report their outcome as ``Ok[T]`` or ``Err[T]`` instead of
raising, because a partially applied insert is an expected, reportable
state rather than an exceptional one. The repository layer unwraps these
results at its boundary, so facade callers still get exceptions.

Architecture:
    ::

        ┌──────────────────┬──────────────────┬───────────────────────┐
        │     Ok[T]        │     Err[T]       │     Utilities         │
        ├──────────────────┼──────────────────┼───────────────────────┤
        │ • value: T       │ • error: Exc     │ • partition_results() │
        │ • map()          │ • map_err()      │                       │
        │ • unwrap()       │ • unwrap() raises│                       │
        └──────────────────┴──────────────────┴───────────────────────┘

Examples:
    >>> from bulkspine.core.result import Ok, Err
    >>> Ok(3).map(lambda n: n * 2).unwrap()
    6
    >>> Err(ValueError("boom")).unwrap_or(0)
    0

Tags:
    result-pattern, error-handling, bulk-spine
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from bulkspine.core.errors import SpineError


T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful result containing a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        """Get the value. Safe for Ok."""
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """Transform the value if Ok."""
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        return self

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        return self

    def to_dict(self) -> dict[str, Any]:
        return {"ok": True, "value": self.value}

    def __repr__(self) -> str:
        return f"Ok({self.value!r})"


@dataclass(frozen=True, slots=True)
class Err(Generic[T]):
    """
    Failed result containing an error.

    ``unwrap()`` raises the wrapped error, which is how the repository
    facade turns an engine failure back into an exception.
    """

    error: Exception

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        """Raise the error. Use only when you're sure it's Ok."""
        raise self.error

    def unwrap_or(self, default: T) -> T:
        return default

    def map(self, f: Callable[[T], U]) -> Result[U]:
        """No-op for Err."""
        return Err(self.error)

    def map_err(self, f: Callable[[Exception], Exception]) -> Result[T]:
        """Transform the error."""
        return Err(f(self.error))

    def inspect_err(self, f: Callable[[Exception], None]) -> Result[T]:
        """Call f with error for side effects, return self."""
        f(self.error)
        return self

    def to_dict(self) -> dict[str, Any]:
        if isinstance(self.error, SpineError):
            return {"ok": False, "error": self.error.to_dict()}
        return {
            "ok": False,
            "error": {
                "error_type": type(self.error).__name__,
                "message": str(self.error),
            },
        }

    def __repr__(self) -> str:
        return f"Err({self.error!r})"


Result = Ok[T] | Err[T]


def partition_results(results: list[Result[T]]) -> tuple[list[T], list[Exception]]:
    """
    Split results into successful values and errors, preserving order.

    Examples:
        >>> values, errors = partition_results([Ok(1), Err(ValueError("x")), Ok(2)])
        >>> values
        [1, 2]
        >>> len(errors)
        1
    """
    values: list[T] = []
    errors: list[Exception] = []
    for result in results:
        match result:
            case Ok(value):
                values.append(value)
            case Err(error):
                errors.append(error)
    return values, errors


__all__ = [
    "Ok",
    "Err",
    "Result",
    "partition_results",
]
