"""Tests for engine creation and connection-source resolution."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import inspect, text
from sqlalchemy.orm import Session

from bulkspine.core.connection import (
    ConnectionInfo,
    connection_info,
    create_bulk_engine,
    resolve_engine,
    shares_one_connection,
)
from bulkspine.core.errors import ConfigError
from bulkspine.core.settings import BulkSpineSettings


class TestCreateBulkEngine:
    def test_creates_parent_directory(self, tmp_path: Path) -> None:
        url = f"sqlite:///{tmp_path / 'nested' / 'dir' / 'x.db'}"
        engine = create_bulk_engine(url)
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        assert (tmp_path / "nested" / "dir").is_dir()
        engine.dispose()

    def test_wal_mode(self, engine) -> None:
        with engine.connect() as conn:
            assert conn.exec_driver_sql("PRAGMA journal_mode").scalar() == "wal"

    def test_ddl_rolls_back(self, engine) -> None:
        with engine.connect() as conn:
            trans = conn.begin()
            conn.exec_driver_sql("CREATE TABLE rolled_back (x INTEGER)")
            trans.rollback()
        assert not inspect(engine).has_table("rolled_back")

    def test_memory_database_is_shared(self) -> None:
        engine = create_bulk_engine("sqlite:///:memory:")
        with engine.begin() as conn:
            conn.exec_driver_sql("CREATE TABLE t (x INTEGER)")
        with engine.connect() as conn:
            assert conn.exec_driver_sql("SELECT count(*) FROM t").scalar() == 0
        engine.dispose()

    def test_memory_engine_shares_one_connection(self, engine) -> None:
        memory = create_bulk_engine("sqlite://")
        assert shares_one_connection(memory)
        assert not shares_one_connection(engine)
        memory.dispose()


class TestConnectionInfo:
    def test_sqlite(self, engine) -> None:
        info = connection_info(engine)
        assert info.backend == "sqlite"
        assert info.driver == "pysqlite"
        assert info.is_sqlite
        assert not info.is_postgres

    def test_repr(self) -> None:
        info = ConnectionInfo(backend="mssql", driver="pyodbc", url="mssql+pyodbc://u:***@h/db")
        assert "mssql" in repr(info)
        assert info.is_mssql


class TestResolveEngine:
    def test_engine_passthrough(self, engine) -> None:
        assert resolve_engine(engine) is engine

    def test_session_bind(self, engine) -> None:
        with Session(engine) as session:
            assert resolve_engine(session) is engine

    def test_unbound_session(self) -> None:
        with Session() as session:
            with pytest.raises(ConfigError):
                resolve_engine(session)

    def test_url_is_cached(self, db_url: str, settings: BulkSpineSettings) -> None:
        first = resolve_engine(db_url, settings)
        assert resolve_engine(db_url, settings) is first

    def test_none_uses_settings(self, settings: BulkSpineSettings) -> None:
        engine = resolve_engine(None, settings)
        assert str(engine.url) == settings.database_url

    def test_unsupported_source(self) -> None:
        with pytest.raises(ConfigError, match="Unsupported"):
            resolve_engine(42)  # type: ignore[arg-type]
