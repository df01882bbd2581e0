"""Global pytest configuration and fixtures."""

# Standard library imports
from typing import Any

# Third-party imports
import psycopg
import pytest
from psycopg import sql

# Local imports
from metrics_reporter.application.registry import MetricRegistry
from metrics_reporter.domain.interfaces.clock import FixedClock


def quoted(table: str) -> str:
    """SQL text of a possibly schema-qualified table identifier."""
    return ".".join(f'"{part}"' for part in table.split("."))


def insert_target(text: str) -> str | None:
    """Quoted table name of an ``INSERT INTO`` statement, or None."""
    if not text.startswith("INSERT INTO "):
        return None
    return text[len("INSERT INTO ") :].split(" (", 1)[0]


class FakeCursor:
    """Cursor that stages writes on its ``FakeConnection``."""

    def __init__(self, connection: "FakeConnection") -> None:
        self.connection = connection

    def __enter__(self) -> "FakeCursor":
        return self

    def __exit__(self, *exc: Any) -> bool:
        return False

    def executemany(self, statement: sql.Composable, rows: list[tuple[Any, ...]]) -> None:
        conn = self.connection
        conn.autocommit_during_writes.append(conn.autocommit)
        target = insert_target(statement.as_string(None))
        for table, error in conn.failures.items():
            if quoted(table) == target:
                raise error
        conn.staged.append((target, list(rows)))

    def execute(self, statement: sql.Composable) -> None:
        conn = self.connection
        text = statement.as_string(None)
        if text.startswith("SAVEPOINT "):
            if conn.savepoint_error is not None:
                raise conn.savepoint_error
            conn.savepoints.append((text[len("SAVEPOINT ") :], len(conn.staged)))
        elif text.startswith("ROLLBACK TO SAVEPOINT "):
            conn.savepoint_rollbacks += 1
            name = text[len("ROLLBACK TO SAVEPOINT ") :]
            for saved, position in reversed(conn.savepoints):
                if saved == name:
                    del conn.staged[position:]
                    return
            raise psycopg.OperationalError("no such savepoint")
        else:
            raise AssertionError(f"unexpected statement {statement!r}")


class FakeConnection:
    """
    In-memory stand-in for a psycopg connection.

    Writes are staged until ``commit`` and discarded by ``rollback``.
    ``failures`` maps table names to the error raised when writing them.
    """

    def __init__(self, autocommit: bool = True) -> None:
        self.autocommit = autocommit
        # (quoted table, rows) per executed batch
        self.staged: list[tuple[str | None, list[tuple[Any, ...]]]] = []
        self.committed: list[tuple[str | None, list[tuple[Any, ...]]]] = []
        self.savepoints: list[tuple[str, int]] = []
        self.failures: dict[str, BaseException] = {}
        self.commit_error: BaseException | None = None
        self.rollback_error: BaseException | None = None
        self.savepoint_error: BaseException | None = None
        self.commit_calls = 0
        self.rollback_calls = 0
        self.savepoint_rollbacks = 0
        self.autocommit_during_writes: list[bool] = []
        self.closed = False

    def cursor(self) -> FakeCursor:
        return FakeCursor(self)

    def commit(self) -> None:
        self.commit_calls += 1
        if self.commit_error is not None:
            raise self.commit_error
        self.committed.extend(self.staged)
        self.staged.clear()
        self.savepoints.clear()

    def rollback(self) -> None:
        self.rollback_calls += 1
        if self.rollback_error is not None:
            raise self.rollback_error
        self.staged.clear()
        self.savepoints.clear()

    def close(self) -> None:
        self.closed = True

    def rows_in(self, table: str) -> list[tuple[Any, ...]]:
        """Committed rows written to ``table``."""
        target = quoted(table)
        return [row for written, rows in self.committed if written == target for row in rows]

    @property
    def committed_row_count(self) -> int:
        return sum(len(rows) for _, rows in self.committed)


class FakeConnectionSource:
    """Connection source handing out one ``FakeConnection``."""

    def __init__(self, connection: FakeConnection | None = None) -> None:
        self.connection = connection or FakeConnection()
        self.acquire_error: BaseException | None = None
        self.release_error: BaseException | None = None
        self.acquired = 0
        self.released = 0
        self.closed = False

    def acquire(self) -> FakeConnection:
        if self.acquire_error is not None:
            raise self.acquire_error
        self.acquired += 1
        return self.connection

    def release(self, connection: FakeConnection) -> None:
        self.released += 1
        if self.release_error is not None:
            raise self.release_error

    def close(self) -> None:
        self.closed = True

    def __str__(self) -> str:
        return "FakeConnectionSource"


@pytest.fixture
def fake_connection() -> FakeConnection:
    """In-memory transactional connection."""
    return FakeConnection()


@pytest.fixture
def fake_source(fake_connection: FakeConnection) -> FakeConnectionSource:
    """Connection source handing out ``fake_connection``."""
    return FakeConnectionSource(fake_connection)


@pytest.fixture
def registry() -> MetricRegistry:
    """Empty metric registry."""
    return MetricRegistry()


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at 1000 seconds past the epoch."""
    return FixedClock.at_seconds(1000)
