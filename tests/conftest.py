"""
Pytest configuration for the registry indexer.

Provides fixtures for:
- Settings isolation (no cached settings leak between tests)
- In-memory fakes for the event source and the store
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import psycopg
import pytest

from registry_fakes import FakeEventSource, InMemoryStore
from registry_indexer.config import Settings, get_settings
from registry_indexer.infrastructure.schema import DDL, TABLES


@pytest.fixture(autouse=True)
def _reset_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def fake_source() -> FakeEventSource:
    return FakeEventSource()


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "registry_indexer_test"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn()


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1")
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def clean_database(test_dsn: str, db_connection_available: bool) -> Generator[str, None, None]:
    """
    Create the schema and empty every table before and after a test.

    Yields the DSN. Skips when the database is not reachable.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    def _truncate() -> None:
        with psycopg.connect(test_dsn) as conn:
            for statement in DDL:
                conn.execute(statement)
            conn.execute(f"TRUNCATE TABLE {', '.join(TABLES)}")

    _truncate()
    yield test_dsn
    _truncate()
