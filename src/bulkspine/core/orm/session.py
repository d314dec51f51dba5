"""Session class, session factory and change-timestamp stamping.

This module provides:

* ``BulkSession``                -- ``Session`` with ``expire_on_commit=False``.
* ``bulk_session_factory``       -- ``sessionmaker`` producing ``BulkSession``.
* ``install_timestamp_stamping`` -- ``before_flush`` hook that fills
  ``created_at`` / ``updated_at`` from an explicit clock.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from bulkspine.core.timestamps import Clock, make_clock


class BulkSession(Session):
    """Pre-configured session with ``expire_on_commit=False``.

    Prevents lazy-load surprises after commit, which matters because the
    repository commits after every write and hands the objects back.
    """

    def __init__(self, bind: Engine | None = None, **kwargs: Any) -> None:
        kwargs.setdefault("expire_on_commit", False)
        super().__init__(bind=bind, **kwargs)


def bulk_session_factory(engine: Engine) -> sessionmaker[BulkSession]:
    """Return a ``sessionmaker`` bound to *engine* that produces ``BulkSession`` instances."""
    return sessionmaker(bind=engine, class_=BulkSession)


def _stamp(session: Session, clock: Clock) -> None:
    now = clock()
    for obj in session.new:
        if hasattr(obj, "created_at"):
            obj.created_at = now
        if hasattr(obj, "updated_at"):
            obj.updated_at = now

    for obj in session.dirty:
        if not hasattr(obj, "updated_at") or not session.is_modified(obj):
            continue
        obj.updated_at = now
        # created_at is write-once; undo whatever a merge copied over it
        history = inspect(obj).attrs.created_at.history
        if history.deleted:
            obj.created_at = history.deleted[0]


def install_timestamp_stamping(
    target: Session | sessionmaker | type[Session],
    clock: Clock | None = None,
) -> Any:
    """Stamp ``created_at`` / ``updated_at`` on every flush of *target*.

    *target* may be a session, a ``sessionmaker`` or a session class.
    Returns the registered listener so callers can ``event.remove`` it.
    """
    clock = clock or make_clock("UTC")

    def _before_flush(session: Session, _flush_context: Any, _instances: Any) -> None:
        _stamp(session, clock)

    event.listen(target, "before_flush", _before_flush)
    return _before_flush


__all__ = [
    "BulkSession",
    "bulk_session_factory",
    "install_timestamp_stamping",
]
