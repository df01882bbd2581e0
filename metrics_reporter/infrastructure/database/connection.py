"""
Database Connection Sources

Provides the connection sources a reporter can draw from: a psycopg_pool
connection pool, a plain driver connection per cycle, or a single
long-lived connection.
"""

# Standard library imports
import logging
from typing import Any

# Third-party imports
import psycopg
from psycopg_pool import ConnectionPool

# Local imports
from metrics_reporter.application.interfaces.connection import IConnectionSource
from metrics_reporter.infrastructure.config import DatabaseConfig

logger = logging.getLogger(__name__)


class PooledConnectionSource(IConnectionSource):
    """
    Connection source backed by a psycopg_pool ``ConnectionPool``.

    Releasing a connection returns it to the pool; the pool resets any
    transaction state left on it. A connection that has not been released is
    handed out again by the next ``acquire``, so reporters that keep their
    connection between cycles hold a single pool slot.
    """

    def __init__(self, pool: ConnectionPool, timeout: float | None = None) -> None:
        self._pool = pool
        self._timeout = timeout
        self._checked_out: psycopg.Connection | None = None

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "PooledConnectionSource":
        pool = ConnectionPool(
            conninfo=config.build_dsn(),
            min_size=config.min_pool_size,
            max_size=config.max_pool_size,
            timeout=config.pool_timeout,
            open=False,
        )
        return cls(pool, timeout=config.pool_timeout)

    @property
    def pool(self) -> ConnectionPool:
        return self._pool

    def acquire(self) -> psycopg.Connection:
        if self._checked_out is not None and not self._checked_out.closed:
            return self._checked_out
        if self._checked_out is not None:
            self._give_back()
        if self._pool.closed:
            self._pool.open(wait=True)
            logger.info(f"Opened connection pool {self._pool.name}")
        self._checked_out = self._pool.getconn(timeout=self._timeout)
        return self._checked_out

    def release(self, connection: psycopg.Connection) -> None:
        if connection is self._checked_out:
            self._checked_out = None
        self._pool.putconn(connection)

    def close(self) -> None:
        if self._checked_out is not None:
            self._give_back()
        if not self._pool.closed:
            self._pool.close()
            logger.info(f"Closed connection pool {self._pool.name}")

    def _give_back(self) -> None:
        connection, self._checked_out = self._checked_out, None
        try:
            self._pool.putconn(connection)
        except Exception as e:
            logger.error(f"Unable to return connection to pool {self._pool.name}: {e}")

    def __str__(self) -> str:
        return f"PooledConnectionSource(pool={self._pool.name}, max_size={self._pool.max_size})"


class DriverConnectionSource(IConnectionSource):
    """
    Opens a driver connection on acquisition and closes it on release.

    An unreleased connection is reused by the next ``acquire`` until it is
    released, the source is closed, or the server closes it.
    """

    def __init__(self, conninfo: str, **connect_kwargs: Any) -> None:
        self._conninfo = conninfo
        self._connect_kwargs = connect_kwargs
        self._connection: psycopg.Connection | None = None

    def acquire(self) -> psycopg.Connection:
        if self._connection is None or self._connection.closed:
            self._connection = psycopg.connect(self._conninfo, **self._connect_kwargs)
        return self._connection

    def release(self, connection: psycopg.Connection) -> None:
        if connection is self._connection:
            self._connection = None
        connection.close()

    def close(self) -> None:
        if self._connection is not None and not self._connection.closed:
            self._connection.close()
        self._connection = None

    def __str__(self) -> str:
        return "DriverConnectionSource"


class SingleConnectionSource(IConnectionSource):
    """
    Hands out the same connection on every acquisition.

    Intended for reporters configured not to close the connection after each
    cycle. Releasing closes the connection; the next acquisition reconnects.
    """

    def __init__(
        self,
        conninfo: str | None = None,
        connection: psycopg.Connection | None = None,
    ) -> None:
        if conninfo is None and connection is None:
            raise ValueError("Either conninfo or connection is required")
        self._conninfo = conninfo
        self._connection = connection

    def acquire(self) -> psycopg.Connection:
        if self._connection is None or self._connection.closed:
            if self._conninfo is None:
                raise psycopg.OperationalError("Connection is closed and cannot be reopened")
            self._connection = psycopg.connect(self._conninfo)
            logger.debug("Opened shared reporter connection")
        return self._connection

    def release(self, connection: psycopg.Connection) -> None:
        connection.close()
        if connection is self._connection:
            self._connection = None

    def close(self) -> None:
        if self._connection is not None and not self._connection.closed:
            self._connection.close()
        self._connection = None

    def __str__(self) -> str:
        return "SingleConnectionSource"


class ConnectionFactory:
    """Builds connection sources from database configuration."""

    @staticmethod
    def create_source(
        config: DatabaseConfig | None = None,
        pooled: bool = True,
    ) -> IConnectionSource:
        """
        Create a connection source.

        Args:
            config: Database configuration (defaults to environment)
            pooled: Use a connection pool rather than a connection per cycle

        Returns:
            Connection source for a reporter
        """
        config = config or DatabaseConfig.from_env()
        if pooled:
            source: IConnectionSource = PooledConnectionSource.from_config(config)
        else:
            source = DriverConnectionSource(config.build_dsn())
        logger.info(f"Created {source} for {config}")
        return source
