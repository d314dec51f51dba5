"""Generic repository: CRUD, projection, ordering and pagination."""

from bulkspine.repository.generic import GenericRepository
from bulkspine.repository.pagination import PaginatedResult, clamp_offset, total_pages
from bulkspine.repository.projection import Projection

__all__ = [
    "GenericRepository",
    "PaginatedResult",
    "Projection",
    "clamp_offset",
    "total_pages",
]
