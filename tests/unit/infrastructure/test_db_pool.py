"""
Name: Database Pool Tests

Responsibilities:
  - Test pool lifecycle (init, get, close, reset)
  - Test ping semantics (no pool -> False, failing DB -> typed error)
  - Test repository pool / connection resolution and error mapping
  - Offline unit tests (no real DB)

Notes:
  - Uses mocking for ConnectionPool
"""

from unittest.mock import MagicMock, patch
from uuid import uuid4

import pytest
from psycopg.errors import UniqueViolation

from app.crosscutting.exceptions import ConflictError, DatabaseError
from app.infrastructure.db.errors import (
    DatabaseConnectionError,
    PoolAlreadyInitializedError,
    PoolNotInitializedError,
)
from app.infrastructure.db.pool import (
    close_pool,
    get_pool,
    init_pool,
    ping,
    reset_pool,
)
from app.infrastructure.repositories.postgres.user import PostgresUserRepository


@pytest.fixture(autouse=True)
def _clean_pool():
    reset_pool()
    yield
    reset_pool()


def _pool_with_connection(conn) -> MagicMock:
    pool = MagicMock()
    pool.connection.return_value.__enter__.return_value = conn
    pool.connection.return_value.__exit__.return_value = False
    return pool


@pytest.mark.unit
class TestPoolLifecycle:
    """Test pool initialization and cleanup."""

    def test_init_pool_creates_pool(self):
        with patch("app.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool

            result = init_pool("postgresql://test", min_size=2, max_size=10)

            MockPool.assert_called_once()
            assert MockPool.call_args.kwargs["min_size"] == 2
            assert result == mock_pool

    def test_init_pool_twice_raises_error(self):
        with patch("app.infrastructure.db.pool.ConnectionPool"):
            init_pool("postgresql://test", min_size=2, max_size=10)

            with pytest.raises(PoolAlreadyInitializedError):
                init_pool("postgresql://test", min_size=2, max_size=10)

    def test_get_pool_without_init_raises_error(self):
        with pytest.raises(PoolNotInitializedError):
            get_pool()

    def test_close_pool_clears_singleton(self):
        with patch("app.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool

            init_pool("postgresql://test", min_size=2, max_size=10)
            close_pool()

            mock_pool.close.assert_called_once()
            with pytest.raises(PoolNotInitializedError):
                get_pool()

    def test_close_pool_is_idempotent(self):
        close_pool()
        close_pool()

    def test_reset_pool_allows_reinit(self):
        with patch("app.infrastructure.db.pool.ConnectionPool"):
            init_pool("postgresql://test", min_size=2, max_size=10)
            reset_pool()

            init_pool("postgresql://test", min_size=2, max_size=10)


@pytest.mark.unit
class TestPing:
    def test_ping_without_pool_is_false(self):
        assert ping() is False

    def test_ping_ok(self):
        conn = MagicMock()
        with patch(
            "app.infrastructure.db.pool.ConnectionPool",
            return_value=_pool_with_connection(conn),
        ):
            init_pool("postgresql://test", min_size=1, max_size=1)

            assert ping() is True
            conn.execute.assert_called_once_with("SELECT 1")

    def test_ping_failure_is_typed(self):
        conn = MagicMock()
        conn.execute.side_effect = OSError("connection refused")
        with patch(
            "app.infrastructure.db.pool.ConnectionPool",
            return_value=_pool_with_connection(conn),
        ):
            init_pool("postgresql://test", min_size=1, max_size=1)

            with pytest.raises(DatabaseConnectionError):
                ping()


@pytest.mark.unit
class TestRepositoryPoolUsage:
    """Test repository uses pool correctly."""

    def test_repository_uses_injected_pool(self):
        mock_pool = MagicMock()
        repo = PostgresUserRepository(pool=mock_pool)

        assert repo._get_pool() == mock_pool

    def test_repository_falls_back_to_global_pool(self):
        with patch("app.infrastructure.db.pool.ConnectionPool") as MockPool:
            mock_pool = MagicMock()
            MockPool.return_value = mock_pool
            init_pool("postgresql://test", min_size=2, max_size=10)

            assert PostgresUserRepository()._get_pool() == mock_pool

    def test_bound_connection_bypasses_pool(self):
        conn = MagicMock()
        conn.execute.return_value.fetchone.return_value = None
        repo = PostgresUserRepository(connection=conn)

        assert repo.get_by_id(uuid4()) is None
        conn.execute.assert_called_once()

    def test_unique_violation_maps_to_conflict(self):
        conn = MagicMock()
        conn.execute.side_effect = UniqueViolation("duplicate key")
        repo = PostgresUserRepository(pool=_pool_with_connection(conn))

        with pytest.raises(ConflictError, match="Email already exists"):
            repo.get_by_email("a@x.com")

    def test_driver_error_maps_to_database_error(self):
        conn = MagicMock()
        conn.execute.side_effect = RuntimeError("boom")
        repo = PostgresUserRepository(pool=_pool_with_connection(conn))

        with pytest.raises(DatabaseError):
            repo.get_by_email("a@x.com")
