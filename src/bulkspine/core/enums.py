"""
Shared enums for bulk-spine.

STDLIB ONLY - NO PYDANTIC.
"""

from enum import Enum


class DeletionPolicy(str, Enum):
    """
    How a row type is deleted by the repository.

    HARD removes the row. SOFT stamps ``deleted_at`` and persists an
    update; soft-deleted rows are hidden from repository queries.
    """

    HARD = "hard"
    SOFT = "soft"


class QueryOrder(str, Enum):
    """Sort direction for ordered repository queries."""

    ASCENDING = "asc"
    DESCENDING = "desc"


class MergeStep(str, Enum):
    """Steps of the bulk update path, in execution order."""

    CONNECT = "connect"
    CREATE_STAGING = "create_staging"
    LOAD = "load"
    MERGE = "merge"
    DROP_STAGING = "drop_staging"
    COMMIT = "commit"
