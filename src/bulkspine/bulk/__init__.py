"""Bulk data sync: schema descriptors, chunk planning, insert and update engines.

Architecture::

    schema.py      describe(row_type) -> RowTypeDescriptor (cached)
    chunking.py    split(rows, chunk_size) -> [Chunk]
    loader.py      RowBuffer + ExecutemanyLoader / CopyLoader
    insert.py      BulkInsertEngine  (parallel, one transaction per chunk)
    update.py      BulkUpdateEngine  (staging table + merge, one transaction)
"""

from bulkspine.bulk.chunking import Chunk, split
from bulkspine.bulk.insert import BulkInsertEngine, ChunkOutcome, InsertReport
from bulkspine.bulk.loader import CopyLoader, ExecutemanyLoader, RowBuffer, select_loader
from bulkspine.bulk.schema import (
    ColumnDescriptor,
    RowTypeDescriptor,
    clear_descriptor_cache,
    describe,
    register_row_types,
    target_table,
)
from bulkspine.bulk.update import BulkUpdateEngine, UpdateReport

__all__ = [
    "Chunk",
    "split",
    "BulkInsertEngine",
    "ChunkOutcome",
    "InsertReport",
    "CopyLoader",
    "ExecutemanyLoader",
    "RowBuffer",
    "select_loader",
    "ColumnDescriptor",
    "RowTypeDescriptor",
    "clear_descriptor_cache",
    "describe",
    "register_row_types",
    "target_table",
    "BulkUpdateEngine",
    "UpdateReport",
]
