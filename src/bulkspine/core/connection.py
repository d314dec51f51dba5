"""
Engine creation and connection-source resolution.

The bulk engines accept a *connection source* and resolve it to a
SQLAlchemy ``Engine`` at call time:

- ``str`` URL      → cached engine built by :func:`create_bulk_engine`
- ``Engine``       → used as-is
- ``Session``      → ``session.get_bind()`` (the mapping context's bind)
- ``None``         → ``settings.database_url``

Every chunk of a bulk insert checks out its own connection from the
engine's pool, so the pool must be able to hand out several connections
at once. SQLite needs two adjustments for the bulk paths to behave:

1. pysqlite's implicit transaction handling is disabled and ``BEGIN`` is
   emitted on SQLAlchemy's ``begin`` event, which makes staging-table DDL
   part of the transaction (and therefore rolled back with it).
2. WAL journaling plus a busy timeout lets parallel chunk writers queue
   for the database lock instead of failing with ``database is locked``.

Examples:
    >>> engine = create_bulk_engine("sqlite:///:memory:")
    >>> connection_info(engine).backend
    'sqlite'

Tags:
    connection, engine, sqlalchemy, sqlite, bulk-spine
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine as _sa_create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import UnboundExecutionError
from sqlalchemy.orm import Session
from sqlalchemy.pool import AssertionPool, StaticPool

from bulkspine.core.errors import ConfigError
from bulkspine.core.logging import get_logger
from bulkspine.core.settings import BulkSpineSettings, get_settings

logger = get_logger(__name__)

ConnectionSource = str | Engine | Session | None


# ── ConnectionInfo ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class ConnectionInfo:
    """Metadata about the engine a bulk operation runs against."""

    backend: str
    """Backend identifier: ``"sqlite"``, ``"postgresql"``, ``"mssql"``."""

    driver: str
    """DB-API driver name: ``"pysqlite"``, ``"psycopg2"``, ``"pyodbc"``."""

    url: str
    """The engine URL with the password masked."""

    def __repr__(self) -> str:
        return f"ConnectionInfo(backend={self.backend!r}, driver={self.driver!r}, url={self.url!r})"

    @property
    def is_sqlite(self) -> bool:
        return self.backend == "sqlite"

    @property
    def is_postgres(self) -> bool:
        return self.backend == "postgresql"

    @property
    def is_mssql(self) -> bool:
        return self.backend == "mssql"


def connection_info(engine: Engine) -> ConnectionInfo:
    """Describe *engine* without exposing credentials."""
    return ConnectionInfo(
        backend=engine.dialect.name,
        driver=engine.dialect.driver,
        url=engine.url.render_as_string(hide_password=True),
    )


# ── Engine factory ───────────────────────────────────────────────────────


def _is_memory(database: str | None) -> bool:
    return not database or database == ":memory:" or database.startswith("file::memory:")


def shares_one_connection(engine: Engine) -> bool:
    """True when every checkout from *engine* is the same DBAPI connection."""
    return isinstance(engine.pool, (StaticPool, AssertionPool))


def create_bulk_engine(
    url: str,
    *,
    echo: bool = False,
    pool_size: int | None = None,
    busy_timeout: float = 30.0,
    **kwargs: Any,
) -> Engine:
    """Create a SQLAlchemy engine configured for the bulk paths.

    Parameters
    ----------
    url:
        Database URL (``sqlite:///…``, ``postgresql+psycopg2://…``,
        ``mssql+pyodbc://…``).
    echo:
        If ``True``, log all SQL.
    pool_size:
        Connection pool size (ignored for SQLite).
    busy_timeout:
        Seconds a SQLite connection waits for the write lock.
    **kwargs:
        Extra arguments forwarded to ``sqlalchemy.create_engine``.
    """
    sa_url = make_url(url)

    if sa_url.get_backend_name() == "sqlite":
        memory = _is_memory(sa_url.database)
        connect_args = kwargs.setdefault("connect_args", {})
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", busy_timeout)
        if memory:
            # one shared connection, otherwise every checkout is a new empty database
            kwargs.setdefault("poolclass", StaticPool)
        else:
            Path(sa_url.database).parent.mkdir(parents=True, exist_ok=True)

        engine = _sa_create_engine(sa_url, echo=echo, **kwargs)

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection: Any, _rec: Any) -> None:
            # let SQLAlchemy's begin event own the transaction boundaries
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            if not memory:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute(f"PRAGMA busy_timeout={int(busy_timeout * 1000)}")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _on_begin(conn: Any) -> None:
            conn.exec_driver_sql("BEGIN")

        return engine

    if sa_url.get_backend_name() == "mssql" and sa_url.get_driver_name() == "pyodbc":
        kwargs.setdefault("fast_executemany", True)

    if pool_size is not None:
        kwargs.setdefault("pool_size", pool_size)
    return _sa_create_engine(sa_url, echo=echo, **kwargs)


# ── Source resolution ────────────────────────────────────────────────────

_engine_cache: dict[str, Engine] = {}
_engine_lock = threading.Lock()


def engine_from_url(url: str, settings: BulkSpineSettings | None = None) -> Engine:
    """Return the cached engine for *url*, creating it on first use."""
    with _engine_lock:
        engine = _engine_cache.get(url)
        if engine is None:
            settings = settings or get_settings()
            engine = create_bulk_engine(
                url,
                echo=settings.database_echo,
                pool_size=settings.database_pool_size,
                busy_timeout=settings.sqlite_busy_timeout,
            )
            _engine_cache[url] = engine
            logger.debug("connection.engine_created", **vars(connection_info(engine)))
        return engine


def resolve_engine(
    source: ConnectionSource = None,
    settings: BulkSpineSettings | None = None,
) -> Engine:
    """Resolve a connection source to an ``Engine``.

    Raises:
        ConfigError: If a session has no bind or the source type is unknown.
    """
    if isinstance(source, Engine):
        return source
    if isinstance(source, Session):
        try:
            bind = source.get_bind()
        except UnboundExecutionError as exc:
            raise ConfigError("Session is not bound to an engine", cause=exc) from exc
        return bind if isinstance(bind, Engine) else bind.engine
    if isinstance(source, str):
        return engine_from_url(source, settings)
    if source is None:
        settings = settings or get_settings()
        return engine_from_url(settings.database_url, settings)
    raise ConfigError(f"Unsupported connection source: {type(source).__name__}")


def dispose_engines() -> None:
    """Dispose and forget every cached engine."""
    with _engine_lock:
        for engine in _engine_cache.values():
            engine.dispose()
        _engine_cache.clear()


__all__ = [
    "ConnectionInfo",
    "ConnectionSource",
    "connection_info",
    "create_bulk_engine",
    "engine_from_url",
    "resolve_engine",
    "dispose_engines",
    "shares_one_connection",
]
