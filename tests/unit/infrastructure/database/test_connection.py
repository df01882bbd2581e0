"""Unit tests for database connection sources."""

from unittest.mock import MagicMock, patch

import psycopg
import pytest

from metrics_reporter.infrastructure.config import DatabaseConfig
from metrics_reporter.infrastructure.database import connection as connection_module
from metrics_reporter.infrastructure.database.connection import (
    ConnectionFactory,
    DriverConnectionSource,
    PooledConnectionSource,
    SingleConnectionSource,
)


@pytest.mark.unit
class TestPooledConnectionSource:
    """Test the psycopg_pool backed source."""

    def test_opens_closed_pool_on_first_acquire(self):
        pool = MagicMock()
        pool.closed = True

        source = PooledConnectionSource(pool, timeout=5)
        connection = source.acquire()

        pool.open.assert_called_once_with(wait=True)
        pool.getconn.assert_called_once_with(timeout=5)
        assert connection is pool.getconn.return_value

    def test_release_returns_connection_to_pool(self):
        pool = MagicMock()
        connection = MagicMock()

        PooledConnectionSource(pool).release(connection)

        pool.putconn.assert_called_once_with(connection)

    def test_close_only_open_pool(self):
        pool = MagicMock()
        pool.closed = True

        PooledConnectionSource(pool).close()

        pool.close.assert_not_called()

    def test_from_config_builds_unopened_pool(self):
        config = DatabaseConfig(host="db", database="metrics", max_pool_size=8)

        with patch.object(connection_module, "ConnectionPool") as pool_cls:
            source = PooledConnectionSource.from_config(config)

        kwargs = pool_cls.call_args.kwargs
        assert kwargs["open"] is False
        assert kwargs["max_size"] == 8
        assert kwargs["conninfo"].startswith("postgresql://db:5432/metrics")
        assert source.pool is pool_cls.return_value

    def test_reuses_connection_until_released(self):
        pool = MagicMock(closed=False)
        pool.getconn.return_value = MagicMock(closed=False)
        source = PooledConnectionSource(pool)

        first = source.acquire()
        assert source.acquire() is first
        assert source.acquire() is first
        pool.getconn.assert_called_once()

        source.release(first)
        source.acquire()

        assert pool.getconn.call_count == 2

    def test_close_returns_outstanding_connection(self):
        pool = MagicMock(closed=False)
        pool.getconn.return_value = MagicMock(closed=False)
        source = PooledConnectionSource(pool)
        held = source.acquire()

        source.close()

        pool.putconn.assert_called_once_with(held)
        pool.close.assert_called_once()


@pytest.mark.unit
class TestDriverConnectionSource:
    def test_connects_per_acquire_and_closes_on_release(self):
        with patch.object(connection_module.psycopg, "connect") as connect:
            source = DriverConnectionSource("dbname=metrics", connect_timeout=3)
            connection = source.acquire()
            source.release(connection)

        connect.assert_called_once_with("dbname=metrics", connect_timeout=3)
        connection.close.assert_called_once()

    def test_reuses_connection_until_released(self):
        with patch.object(connection_module.psycopg, "connect") as connect:
            connect.return_value = MagicMock(closed=False)
            source = DriverConnectionSource("dbname=metrics")
            connections = {id(source.acquire()) for _ in range(3)}

        assert len(connections) == 1
        connect.assert_called_once()

    def test_reconnects_when_held_connection_closed(self):
        with patch.object(connection_module.psycopg, "connect") as connect:
            connect.side_effect = [MagicMock(closed=False), MagicMock(closed=False)]
            source = DriverConnectionSource("dbname=metrics")
            source.acquire().closed = True
            source.acquire()

        assert connect.call_count == 2

    def test_close_closes_outstanding_connection(self):
        with patch.object(connection_module.psycopg, "connect") as connect:
            connect.return_value = MagicMock(closed=False)
            source = DriverConnectionSource("dbname=metrics")
            held = source.acquire()
            source.close()

        held.close.assert_called_once()


@pytest.mark.unit
class TestSingleConnectionSource:
    """Test the shared connection source."""

    def test_requires_conninfo_or_connection(self):
        with pytest.raises(ValueError):
            SingleConnectionSource()

    def test_reuses_open_connection(self):
        existing = MagicMock(closed=False)
        source = SingleConnectionSource(connection=existing)

        assert source.acquire() is existing
        assert source.acquire() is existing

    def test_reconnects_after_release(self):
        with patch.object(connection_module.psycopg, "connect") as connect:
            source = SingleConnectionSource("dbname=metrics")
            first = source.acquire()
            source.release(first)
            source.acquire()

        assert connect.call_count == 2
        first.close.assert_called_once()

    def test_closed_connection_without_conninfo(self):
        source = SingleConnectionSource(connection=MagicMock(closed=True))

        with pytest.raises(psycopg.OperationalError):
            source.acquire()


@pytest.mark.unit
class TestConnectionFactory:
    def test_pooled_by_default(self):
        with patch.object(connection_module, "ConnectionPool"):
            source = ConnectionFactory.create_source(DatabaseConfig())

        assert isinstance(source, PooledConnectionSource)

    def test_unpooled(self):
        source = ConnectionFactory.create_source(DatabaseConfig(), pooled=False)

        assert isinstance(source, DriverConnectionSource)
