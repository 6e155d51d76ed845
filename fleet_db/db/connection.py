"""
Unified query facade for fleet_db.

This file defines:
- Database: the only interface the rest of the system calls
      query_many / query_one / execute / table_exists / transaction()
- Transaction: the same query surface bound to one pinned connection

Every statement is written in the neutral dialect (``?`` placeholders, no
RETURNING). Results always come back as a QueryResult (or a plain dict for
query_one), whichever backend is active; callers never branch on the
backend kind.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Sequence

from .backend_base import BackendKind, DBBackend
from .helpers import QueryResult
from .provider import ConnectionProvider


class Transaction:
    """
    Query surface bound to one leased connection inside BEGIN ... COMMIT.

    Obtained from ``Database.transaction()``; not constructed directly.
    """

    def __init__(self, backend: DBBackend, raw_conn: Any):
        self.backend = backend
        self.raw = raw_conn

    def query_many(self, query: str, params: Optional[Sequence] = None) -> QueryResult:
        return self.backend.run(self.raw, query, params or ())

    def query_one(self, query: str, params: Optional[Sequence] = None) -> Optional[Dict[str, Any]]:
        return self.query_many(query, params).first()

    execute = query_many

    def table_exists(self, table: str) -> bool:
        return self.backend.table_exists(self.raw, table)


class Database:
    """
    Backend-neutral query facade.

    Parameters
    ----------
    provider : ConnectionProvider
        Supplies the acquired backend. Any call made before
        ``provider.acquire()`` raises NotInitializedError.

    Notes
    -----
    - Each call leases a connection for its own duration only: the shared
      SQLite connection (serialized by its lock) or one pooled PostgreSQL
      connection.
    - Statements outside ``transaction()`` commit individually.
    - Driver errors propagate unchanged.
    """

    def __init__(self, provider: ConnectionProvider):
        self.provider = provider

    @property
    def backend(self) -> DBBackend:
        return self.provider.backend

    @property
    def kind(self) -> BackendKind:
        return self.backend.kind

    # ------------------------------------------------------------------
    # SQL execution
    # ------------------------------------------------------------------

    def query_many(self, query: str, params: Optional[Sequence] = None) -> QueryResult:
        """
        Execute one statement.

        Reads return every matching row; writes return the affected-row
        count, plus ``insert_id`` after a single-row INSERT.
        """
        backend = self.backend
        with backend.lease() as conn:
            return backend.run(conn, query, params or ())

    def query_one(self, query: str, params: Optional[Sequence] = None) -> Optional[Dict[str, Any]]:
        """
        Execute one statement and return its first row as a dict, or None.
        """
        return self.query_many(query, params).first()

    # Alias kept for readability at mutating call sites.
    execute = query_many

    def table_exists(self, table: str) -> bool:
        backend = self.backend
        with backend.lease() as conn:
            return backend.table_exists(conn, table)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Run a block of statements atomically on one pinned connection.

            with db.transaction() as tx:
                tx.execute("DELETE FROM vehicles")
                ...

        Commits when the block exits normally. If the block raises, the
        transaction is rolled back on the same connection and the original
        exception propagates. The connection is released on every path.
        """
        backend = self.backend
        with backend.transaction() as conn:
            yield Transaction(backend, conn)


__all__ = [
    "Database",
    "Transaction",
]
