"""
Shared fixtures for integration tests.

Provides a migrated connection pool and a freshly seeded catalog per test.
"""

from collections.abc import Generator

import pytest
from psycopg_pool import ConnectionPool

from tests.postgres_support import open_pool, reset_database

# Module-level marker for all integration tests
pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool for integration tests."""
    yield from open_pool()


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Reset tables and reload the sample catalog before each test."""
    reset_database(pool)
    yield
