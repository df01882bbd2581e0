"""
Transactional Metric Writer

Writes every metric family of a report cycle inside one database
transaction. The connection and its autocommit flag are scoped resources:
both are restored or released on every exit path, and failures while
restoring them are logged rather than raised so they never mask the error
that ended the cycle.
"""

# Standard library imports
import logging
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

# Third-party imports
import psycopg
from psycopg import sql

# Local imports
from metrics_reporter.application.interfaces.connection import IConnectionSource
from metrics_reporter.domain.exceptions import (
    CommitError,
    ConnectionAcquisitionError,
    MetricsWriteError,
    ReportingError,
)
from metrics_reporter.domain.metrics import MetricFamily, ReportCycle
from metrics_reporter.infrastructure.database.statements import FamilyEncoder, StatementBuilder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FullRollback:
    """Discard everything written in the cycle."""

    error: BaseException


@dataclass(frozen=True)
class PartialRollback:
    """Discard only what was written after ``savepoint``."""

    savepoint: str
    error: BaseException


RollbackPlan = FullRollback | PartialRollback


@dataclass(frozen=True)
class WriteResult:
    """Rows written per family by a committed cycle."""

    timestamp: int
    rows: dict[MetricFamily, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.rows.values())


class TransactionalWriter:
    """
    Writes report cycles atomically.

    Each call to :meth:`write` acquires a connection, disables autocommit,
    writes the families in encoder order, then commits. When a family fails
    the writer follows a rollback plan:

    - ``FullRollback``: roll back the whole transaction.
    - ``PartialRollback``: roll back to the savepoint taken before the
      failing family and commit the families written before it.

    With ``rollback_on_exception`` disabled no rollback is issued; whatever
    was written is committed and a failing commit is only logged. In every
    case the write error is raised to the caller.
    """

    def __init__(
        self,
        source: IConnectionSource,
        builder: StatementBuilder,
        rollback_on_exception: bool = True,
        close_on_completion: bool = True,
        savepoint_per_family: bool = False,
    ) -> None:
        self.source = source
        self.builder = builder
        self.rollback_on_exception = rollback_on_exception
        self.close_on_completion = close_on_completion
        self.savepoint_per_family = savepoint_per_family

    def write(self, cycle: ReportCycle) -> WriteResult:
        """
        Write and commit one report cycle.

        Returns:
            Rows written per family

        Raises:
            ConnectionAcquisitionError: If no connection could be obtained
            MetricsWriteError: If a family's batch insert failed
            CommitError: If the final commit failed
        """
        with self._connection() as connection, self._autocommit_disabled(connection):
            rows: dict[MetricFamily, int] = {}
            plan = self._write_families(connection, cycle, rows)
            if plan is None:
                self._commit(connection)
                return WriteResult(cycle.timestamp, rows)

            self._recover(connection, plan)
            raise plan.error

    @contextmanager
    def _connection(self) -> Generator[Any, None, None]:
        try:
            connection = self.source.acquire()
        except Exception as e:
            logger.error(f"Unable to acquire connection: {e}")
            raise ConnectionAcquisitionError(str(self.source), e) from e

        try:
            yield connection
        finally:
            if self.close_on_completion:
                try:
                    self.source.release(connection)
                except Exception as e:
                    logger.error(f"Unable to release connection: {e}")

    @contextmanager
    def _autocommit_disabled(self, connection: Any) -> Generator[None, None, None]:
        try:
            previous = connection.autocommit
            connection.autocommit = False
        except psycopg.Error as e:
            logger.error(f"Unable to disable autocommit: {e}")
            raise ReportingError(f"Unable to disable autocommit: {e}", e) from e

        try:
            yield
        finally:
            try:
                connection.autocommit = previous
            except Exception as e:
                logger.error(f"Unable to restore autocommit to original value for connection: {e}")

    def _write_families(
        self, connection: Any, cycle: ReportCycle, rows: dict[MetricFamily, int]
    ) -> RollbackPlan | None:
        for encoder in self.builder.encoders:
            savepoint = None
            try:
                if self.savepoint_per_family:
                    savepoint = self._set_savepoint(connection, encoder)
                batch = self.builder.build(
                    encoder, cycle.timestamp, cycle.snapshot.family(encoder.family)
                )
                with connection.cursor() as cursor:
                    rows[encoder.family] = batch.execute(cursor)
            except Exception as e:
                error = self._translate(encoder, e)
                logger.error(f"Failed writing {encoder.family.value} metrics: {e}")
                if savepoint is None:
                    return FullRollback(error)
                return PartialRollback(savepoint, error)
        return None

    def _set_savepoint(self, connection: Any, encoder: FamilyEncoder) -> str:
        name = f"metrics_{encoder.family.value}"
        with connection.cursor() as cursor:
            cursor.execute(sql.SQL("SAVEPOINT {}").format(sql.Identifier(name)))
        return name

    def _translate(self, encoder: FamilyEncoder, error: Exception) -> BaseException:
        if isinstance(error, ReportingError) or not isinstance(error, psycopg.Error):
            return error
        table = self.builder.tables.for_family(encoder.family)
        wrapped = MetricsWriteError(encoder.family.value, table, error)
        wrapped.__cause__ = error
        return wrapped

    def _commit(self, connection: Any) -> None:
        try:
            connection.commit()
        except psycopg.Error as e:
            logger.error(f"Unable to commit transaction: {e}")
            if self.rollback_on_exception:
                self._rollback(connection)
            raise CommitError(e) from e
        logger.debug("Transaction committed")

    def _recover(self, connection: Any, plan: RollbackPlan) -> None:
        if not self.rollback_on_exception:
            try:
                connection.commit()
                logger.debug("Committed rows written before the failure")
            except Exception as e:
                logger.error(f"Unable to commit transaction: {e}")
            return

        if isinstance(plan, PartialRollback):
            self._rollback_to_savepoint(connection, plan.savepoint)
        else:
            self._rollback(connection)

    def _rollback(self, connection: Any) -> None:
        try:
            logger.debug("Rolling back transaction...")
            connection.rollback()
            logger.debug("Transaction rolled back")
        except Exception as e:
            logger.error(f"Unable to rollback transaction: {e}")

    def _rollback_to_savepoint(self, connection: Any, savepoint: str) -> None:
        try:
            logger.debug(f"Rolling back transaction to savepoint {savepoint}...")
            with connection.cursor() as cursor:
                cursor.execute(
                    sql.SQL("ROLLBACK TO SAVEPOINT {}").format(sql.Identifier(savepoint))
                )
        except Exception as e:
            logger.error(f"Unable to rollback to savepoint {savepoint}: {e}")
            self._rollback(connection)
            return

        try:
            connection.commit()
            logger.debug(f"Transaction rolled back to savepoint {savepoint}")
        except Exception as e:
            logger.error(f"Unable to commit transaction: {e}")
