"""
Shared pytest fixtures and configuration for bulk-spine tests.

This module provides:
- File-backed SQLite engines built with ``create_bulk_engine``
- Sessions and settings wired to those engines
- Cache cleanup (descriptors, settings, engines) for test isolation

SQLite stands in for the target store.  Parallel insert tests need a file
database (one connection per chunk); update-path tests that inspect
``sqlite_temp_master`` use ``static_engine`` so every checkout is the same
connection and temporary tables stay visible.
"""

import sys
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Ensure bulkspine package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from bulkspine.bulk.schema import clear_descriptor_cache
from bulkspine.core.connection import create_bulk_engine, dispose_engines
from bulkspine.core.orm import BulkBase, bulk_session_factory
from bulkspine.core.settings import BulkSpineSettings, clear_settings_cache

import tests._support.models  # noqa: F401  (registers the sample tables)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests that touch a database as integration, the rest as unit."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if markers.intersection({"unit", "integration"}):
            continue
        fixtures = set(getattr(item, "fixturenames", ()))
        if fixtures.intersection({"engine", "static_engine", "session", "repo"}):
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Cache Cleanup Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_caches() -> Generator[None, None, None]:
    """Reset descriptor, settings and engine caches around each test."""
    clear_descriptor_cache()
    clear_settings_cache()
    yield
    clear_descriptor_cache()
    clear_settings_cache()
    dispose_engines()


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'bulk.db'}"


@pytest.fixture
def settings(db_url: str) -> BulkSpineSettings:
    return BulkSpineSettings(
        database_url=db_url,
        chunk_size=10,
        max_parallelism=4,
        sqlite_busy_timeout=30,
        timezone="UTC",
    )


@pytest.fixture
def engine(db_url: str) -> Generator[Engine, None, None]:
    """File-backed SQLite engine (pooled) with every sample table created."""
    eng = create_bulk_engine(db_url)
    BulkBase.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def static_engine(db_url: str) -> Generator[Engine, None, None]:
    """File-backed SQLite engine that always hands out the same connection."""
    eng = create_bulk_engine(db_url, poolclass=StaticPool)
    BulkBase.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    s = bulk_session_factory(engine)()
    yield s
    s.close()
