"""
Test support utilities for bulk-spine tests.

Sample row types live in :mod:`tests._support.models`; fault helpers for
the bulk engines live here.
"""

from __future__ import annotations

from typing import Any


class FailingLoader:
    """Loader double that fails for selected chunks and delegates the rest.

    ``fail_when`` receives the buffer and returns True to raise.
    """

    def __init__(self, inner: Any, fail_when: Any, message: str = "injected load failure"):
        self.inner = inner
        self.fail_when = fail_when
        self.message = message
        self.calls = 0

    def load(self, conn: Any, table_name: str, buffer: Any, *, batch_size: int | None = None) -> int:
        self.calls += 1
        written = self.inner.load(conn, table_name, buffer, batch_size=batch_size)
        if self.fail_when(buffer):
            # rows are written inside the open transaction, the rollback must undo them
            raise RuntimeError(self.message)
        return written
