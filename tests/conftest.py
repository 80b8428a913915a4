"""
Pytest configuration for pdbsync.

Provides fixtures for:
- An in-memory stand-in for a psycopg connection (unit tests)
- Canned catalog envelopes served through ``httpx.MockTransport``
- Database connection management for integration tests
"""

from __future__ import annotations

import os
from typing import Generator

import httpx
import psycopg
import pytest

from pdbsync.config import Settings
from tests.fakes import BASE_URL, CatalogRoutes, FakeConnection


@pytest.fixture
def fake_conn() -> FakeConnection:
    return FakeConnection()


@pytest.fixture
def routes() -> CatalogRoutes:
    return CatalogRoutes()


@pytest.fixture
def http_client(routes: CatalogRoutes) -> Generator[httpx.Client, None, None]:
    with httpx.Client(transport=httpx.MockTransport(routes)) as client:
        yield client


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        PDB_BASE_URL=BASE_URL,
        DB_HOST=os.getenv("DB_HOST", "localhost"),
        DB_PORT=int(os.getenv("DB_PORT", "5432")),
        DB_USER=os.getenv("DB_USER", "postgres"),
        DB_PASSWORD=os.getenv("DB_PASSWORD", "postgres"),
        DB_NAME=os.getenv("DB_NAME", "pdb_test"),
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return test_settings.dsn


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            conn.execute("SELECT 1;").fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a clean, schema-initialized connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("PostgreSQL is not reachable")

    from pdbsync.infrastructure.db_factory import init_schema

    conn = psycopg.connect(test_dsn)
    try:
        init_schema(conn)
        with conn.transaction():
            conn.execute("TRUNCATE TABLE ix, networks, network_ix_lans;")
            conn.execute("DROP TABLE IF EXISTS sync_state;")
        yield conn
    finally:
        conn.close()
