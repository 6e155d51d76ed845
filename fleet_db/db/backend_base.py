"""
Backend base interfaces for fleet_db.

This module defines the minimal contract that both database backends
(SQLite, Postgres) satisfy. A backend is a strategy object chosen once per
process: it owns the connection handle and knows the dialect details the
query facade must not care about.

Backends must expose:

    backend.kind                 -> BackendKind
    backend.open()               -> establish the connection / pool
    backend.close()              -> release it
    backend.lease()              -> context manager yielding a raw connection
                                    exclusively for one statement
    backend.begin(conn)          -> start a transaction on a leased connection
    backend.commit(conn)
    backend.rollback(conn)
    backend.translate(q, params) -> (native_query, native_params)
    backend.run(conn, q, params) -> QueryResult
    backend.table_exists(conn, table) -> bool

This file provides:
- BackendKind: which engine is active
- DBBackend: abstract base class with the shared run/table_exists logic
"""

from __future__ import annotations

import enum
import logging
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Iterator, Optional, Sequence, Tuple

from . import helpers
from .helpers import QueryResult
from .translator import is_insert
from ..errors import SchemaCheckError

logger = logging.getLogger(__name__)


class BackendKind(enum.Enum):
    """The two supported engines."""

    EMBEDDED_FILE = "sqlite"
    NETWORKED_SERVER = "postgres"

    def __str__(self) -> str:
        return self.value


# ---------------------------------------------------------------------------
# Abstract Base Backend
# ---------------------------------------------------------------------------

class DBBackend(ABC):
    """
    Abstract base class for a fleet_db backend.

    Concrete subclasses may define any constructor signature they want
    (e.g. SQLiteBackend(db_path), PostgresBackend(dsn)).
    """

    kind: BackendKind

    # SQL run against the engine's catalog; one ``?`` bound to the table name.
    table_exists_sql: str = ""

    helpers = helpers

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @abstractmethod
    def open(self) -> None:
        """Establish the connection or pool. Called once by the provider."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Release the connection or pool. Safe to call more than once."""
        raise NotImplementedError

    @property
    @abstractmethod
    def is_open(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def lease(self) -> Any:
        """
        Context manager yielding a raw connection for exclusive use.

        Leases are held for one facade call, or for the whole duration of a
        transaction.
        """
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    @abstractmethod
    def translate(self, query: str, params: Sequence = ()) -> Tuple[str, tuple]:
        raise NotImplementedError

    @abstractmethod
    def _generated_id(self, cur: Any, rows: list) -> Optional[int]:
        """Primary key generated by the last INSERT on ``cur``."""
        raise NotImplementedError

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def begin(self, conn: Any) -> None:
        self._simple(conn, "BEGIN")

    def commit(self, conn: Any) -> None:
        self._simple(conn, "COMMIT")

    def rollback(self, conn: Any) -> None:
        self._simple(conn, "ROLLBACK")

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """
        Lease one connection, BEGIN on it and yield it.

        Commits on a clean exit. On error, a failed COMMIT included, the
        same connection is rolled back and the original exception
        propagates. The lease is released on every path.
        """
        with self.lease() as conn:
            self.begin(conn)
            try:
                yield conn
                self.commit(conn)
            except BaseException:
                try:
                    self.rollback(conn)
                except Exception:
                    logger.exception("Rollback failed on %s backend", self.kind)
                raise

    # ------------------------------------------------------------------
    # Statement execution
    # ------------------------------------------------------------------

    def run(self, conn: Any, query: str, params: Sequence = ()) -> QueryResult:
        """Translate and execute one neutral query on a leased connection."""
        native_query, native_params = self.translate(query, params)
        insert = is_insert(query)

        cur = self.helpers.safe_execute(conn, native_query, native_params)
        try:
            returns_rows = cur.description is not None
            rows = self.helpers.fetch_rows(cur)
            generated = self._generated_id(cur, rows) if insert else None
            return self.helpers.normalize_result(
                rows,
                cur.rowcount,
                returns_rows=returns_rows,
                insert=insert,
                generated_id=generated,
            )
        finally:
            cur.close()

    def table_exists(self, conn: Any, table: str) -> bool:
        """
        Look the table up in the engine catalog.

        Absence is a normal answer; only a failing lookup raises
        SchemaCheckError.
        """
        try:
            result = self.run(conn, self.table_exists_sql, (table,))
        except Exception as e:
            raise SchemaCheckError(
                table, f"Existence check failed for table {table!r}: {e}"
            ) from e
        return result.row_count > 0

    def _simple(self, conn: Any, statement: str) -> None:
        cur = self.helpers.safe_execute(conn, statement)
        cur.close()


__all__ = [
    "BackendKind",
    "DBBackend",
]
