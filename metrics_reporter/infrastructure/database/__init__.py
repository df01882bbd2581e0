"""
Database Infrastructure Module

Connection sources, per-family insert statements and the transactional
writer that commits one report cycle at a time. Uses psycopg 3.
"""

from .connection import (
    ConnectionFactory,
    DriverConnectionSource,
    PooledConnectionSource,
    SingleConnectionSource,
)
from .statements import ENCODERS, FamilyEncoder, StatementBuilder, TableNames
from .transaction import FullRollback, PartialRollback, TransactionalWriter, WriteResult

__all__ = [
    "ConnectionFactory",
    "DriverConnectionSource",
    "PooledConnectionSource",
    "SingleConnectionSource",
    "ENCODERS",
    "FamilyEncoder",
    "StatementBuilder",
    "TableNames",
    "FullRollback",
    "PartialRollback",
    "TransactionalWriter",
    "WriteResult",
]
