"""
Shared DB helper utilities.

These wrappers ensure:
    - consistent interfaces across backends
    - predictable row→dict mapping
    - one normalized result shape (QueryResult) for both engines

Driver errors are logged with their query context and re-raised unchanged,
so callers can still inspect native error codes.

Backends import this module as `.helpers`
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Normalized result
# ----------------------------------------------------------------------

@dataclass(frozen=True)
class QueryResult:
    """
    Backend-independent result of a single statement.

    rows:
        Returned rows as plain dicts (empty for writes without RETURNING).
    row_count:
        Rows returned for reads, rows affected for writes.
    insert_id:
        Generated primary key after an INSERT that affected exactly one
        row, otherwise None.
    """

    rows: List[Dict[str, Any]] = field(default_factory=list)
    row_count: int = 0
    insert_id: Optional[int] = None

    def first(self) -> Optional[Dict[str, Any]]:
        return self.rows[0] if self.rows else None


# ----------------------------------------------------------------------
# Execution helpers
# ----------------------------------------------------------------------

def safe_execute(conn: Any, query: str, params: Optional[Sequence] = None):
    """
    Execute a single SQL statement and return the raw cursor.

    Parameters
    ----------
    conn:
        DB-API compatible connection object (sqlite3, psycopg2).
    query:
        SQL string already in the driver's native placeholder syntax.
    params:
        Optional parameter sequence. Empty sequences are passed as None so
        psycopg2 skips %-interpolation entirely.
    """
    cur = conn.cursor()
    try:
        if params:
            cur.execute(query, tuple(params))
        else:
            cur.execute(query)
    except Exception:
        logger.debug("DB execute failed | Query: %r | Params: %r", query, params)
        cur.close()
        raise
    return cur


def fetch_rows(cur: Any) -> List[Dict[str, Any]]:
    """
    Fetch every row of a cursor as dicts.

    Cursors of statements that produce no result set (description is None)
    yield an empty list.
    """
    if cur.description is None:
        return []
    return [row_to_dict(r) for r in cur.fetchall()]


def normalize_result(
    rows: List[Dict[str, Any]],
    affected: int,
    *,
    returns_rows: bool,
    insert: bool,
    generated_id: Optional[int],
) -> QueryResult:
    """
    Build a QueryResult from what the driver reported.

    ``affected`` is the cursor rowcount, which drivers report as -1 for
    plain SELECTs; in that case the fetched row count is used.
    """
    if returns_rows and (affected is None or affected < 0):
        row_count = len(rows)
    else:
        row_count = max(int(affected or 0), 0)

    insert_id = None
    if insert and row_count == 1 and generated_id is not None:
        insert_id = int(generated_id)

    return QueryResult(rows=rows, row_count=row_count, insert_id=insert_id)


# ----------------------------------------------------------------------
# Row mapping
# ----------------------------------------------------------------------

def row_to_dict(row: Any) -> dict:
    """
    Convert sqlite3.Row or psycopg2 RealDictRow to a plain Python dict.

    This normalizes row outputs across backends.
    """
    if row is None:
        return {}

    # sqlite3.Row, psycopg2.extras.RealDictRow, etc.
    if hasattr(row, "keys"):
        return {k: row[k] for k in row.keys()}

    # Fallback: treat as a tuple-like sequence
    return dict(enumerate(row))


__all__ = [
    "QueryResult",
    "safe_execute",
    "fetch_rows",
    "normalize_result",
    "row_to_dict",
]
