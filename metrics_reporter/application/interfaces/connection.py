"""
Connection Source Interface

Defines the contract the reporter needs from whatever hands out database
connections: a pool, a driver, or a single long-lived connection.
"""

# Standard library imports
from abc import abstractmethod
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class IConnectionSource(Protocol):
    """
    Source of DB-API connections for report cycles.

    A connection returned by ``acquire`` is owned exclusively by the caller
    until it is passed back to ``release``. Implementations are responsible
    for any cross-thread safety of allocation.
    """

    @abstractmethod
    def acquire(self) -> Any:
        """
        Obtain a connection.

        Raises:
            Exception: Any driver error; callers translate it into
                ConnectionAcquisitionError
        """
        ...

    @abstractmethod
    def release(self, connection: Any) -> None:
        """Give a connection back to the source."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Release every resource held by the source."""
        ...
