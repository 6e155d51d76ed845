"""
Operational data reset.

Deletes every row of the operational tables (vehicles, maintenance, fuel,
mileage, ownership...) while keeping the schema, master data
(manufacturers, vehicle models) and, unless asked otherwise, user accounts.

The whole reset is one transaction on one pinned connection:

    1. BEGIN
    2. for each table, in the given order:
           absent  -> reported as skipped, not an error
           present -> DELETE FROM <table>, affected rows reported
    3. optionally purge users that are neither admin-role nor the reserved
       administrator address
    4. COMMIT and return the ResetReport

Any failure rolls the transaction back and raises TransactionFailure
chained to the original error. The table order must already respect
foreign keys (dependents first); no dependency inference is done.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from ..config import FleetDBConfig
from ..db.connection import Database, Transaction
from ..errors import TransactionFailure

logger = logging.getLogger(__name__)

Emit = Callable[[str, Dict[str, Any]], None]

# Dependents before the tables they reference.
DEFAULT_OPERATIONAL_TABLES: Tuple[str, ...] = (
    "mileage_history",
    "fuel_records",
    "maintenance_records",
    "ocr_usage",
    "vehicle_shares",
    "ownership_history",
    "vehicles",
    "owners",
)

USERS_TABLE = "users"

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TableCleanupResult:
    table: str
    deleted: int = 0
    skipped: bool = False


@dataclass(frozen=True)
class ResetReport:
    """Per-table outcome of one reset, in processing order."""

    results: Tuple[TableCleanupResult, ...] = ()

    @property
    def total_deleted(self) -> int:
        return sum(r.deleted for r in self.results if not r.skipped)

    @property
    def summary(self) -> Dict[str, Dict[str, Any]]:
        return {
            r.table: {"deleted": r.deleted, "skipped": r.skipped}
            for r in self.results
        }

    def __iter__(self):
        return iter(self.results)

    def __len__(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "results": [
                {"table": r.table, "deleted": r.deleted, "skipped": r.skipped}
                for r in self.results
            ],
            "summary": self.summary,
            "total_deleted": self.total_deleted,
        }


@dataclass(frozen=True)
class ResetOptions:
    """
    Options for reset_operational_data.

    Attributes
    ----------
    reset_users:
        Also delete user accounts, except those with ``admin_role`` or the
        ``admin_email`` address.
    tables:
        Tables to empty, in foreign-key-safe order.
    """

    reset_users: bool = False
    tables: Tuple[str, ...] = DEFAULT_OPERATIONAL_TABLES
    admin_role: str = "admin"
    admin_email: str = "admin@fleet.local"

    @classmethod
    def from_config(cls, config: FleetDBConfig, **overrides: Any) -> "ResetOptions":
        values: Dict[str, Any] = {
            "reset_users": config.reset_users,
            "admin_role": config.admin_role,
            "admin_email": config.admin_email,
        }
        values.update(overrides)
        if "tables" in values:
            values["tables"] = tuple(values["tables"])
        return cls(**values)


# ---------------------------------------------------------------------------
# Reset
# ---------------------------------------------------------------------------

def _quote(table: str) -> str:
    return f'"{table}"'


def _validate_tables(tables: Iterable[str]) -> Tuple[str, ...]:
    tables = tuple(tables)
    bad = [t for t in tables if not isinstance(t, str) or not _IDENTIFIER.match(t)]
    if bad:
        raise ValueError(f"Invalid table name(s) for reset: {bad!r}")
    return tables


def _noop_emit(kind: str, payload: Dict[str, Any]) -> None:
    return None


def _clean_table(tx: Transaction, table: str) -> TableCleanupResult:
    if not tx.table_exists(table):
        logger.warning("Table %s does not exist; skipping", table)
        return TableCleanupResult(table=table, deleted=0, skipped=True)

    result = tx.execute(f"DELETE FROM {_quote(table)}")
    logger.info("%s: %d row(s) deleted", table, result.row_count)
    return TableCleanupResult(table=table, deleted=result.row_count)


def _purge_users(tx: Transaction, options: ResetOptions) -> TableCleanupResult:
    if not tx.table_exists(USERS_TABLE):
        logger.warning("Table %s does not exist; skipping", USERS_TABLE)
        return TableCleanupResult(table=USERS_TABLE, deleted=0, skipped=True)

    result = tx.execute(
        f"DELETE FROM {_quote(USERS_TABLE)} "
        "WHERE COALESCE(role, '') <> ? AND COALESCE(email, '') <> ?",
        (options.admin_role, options.admin_email),
    )
    logger.info("%s: %d non-admin account(s) deleted", USERS_TABLE, result.row_count)
    return TableCleanupResult(table=USERS_TABLE, deleted=result.row_count)


def reset_operational_data(
    database: Database,
    options: Optional[ResetOptions] = None,
    *,
    emit: Optional[Emit] = None,
) -> ResetReport:
    """
    Empty the operational tables as one all-or-nothing transaction.

    Parameters
    ----------
    database : Database
        Facade whose provider has been acquired.
    options : ResetOptions, optional
        Defaults to ResetOptions() (default tables, users preserved).
    emit : callable, optional
        Progress callback ``emit(kind, payload)`` with kinds
        "reset_started", "table_cleaned", "reset_finished" and
        "reset_failed". "reset_finished" is sent only after COMMIT. An
        exception raised by the callback before that aborts the reset and
        rolls it back.

    Returns
    -------
    ResetReport

    Raises
    ------
    ValueError
        A table name is not a plain SQL identifier (raised before any I/O).
    TransactionFailure
        Any statement failed; the transaction was rolled back.
    """
    options = options or ResetOptions()
    emit = emit or _noop_emit
    tables = _validate_tables(options.tables)

    results: List[TableCleanupResult] = []
    current: Optional[str] = None

    logger.info(
        "Starting operational data reset on %s backend (reset_users=%s)",
        database.kind.value, options.reset_users,
    )

    try:
        with database.transaction() as tx:
            emit("reset_started", {
                "tables": list(tables),
                "reset_users": options.reset_users,
                "backend": database.kind.value,
            })

            for table in tables:
                current = table
                entry = _clean_table(tx, table)
                results.append(entry)
                emit("table_cleaned", {
                    "table": entry.table,
                    "deleted": entry.deleted,
                    "skipped": entry.skipped,
                })

            if options.reset_users:
                current = USERS_TABLE
                entry = _purge_users(tx, options)
                results.append(entry)
                emit("table_cleaned", {
                    "table": entry.table,
                    "deleted": entry.deleted,
                    "skipped": entry.skipped,
                })
            current = None
    except Exception as e:
        logger.error("Reset failed at table %s; transaction rolled back: %s", current, e)
        where = f" at table {current!r}" if current else ""
        failure = TransactionFailure(
            f"Operational data reset failed{where}: {e}",
            table=current,
            cause=e,
        )
        try:
            emit("reset_failed", {"table": current, "error": str(e), "code": failure.code})
        except Exception:
            logger.exception("Reset progress callback failed while reporting an error")
        raise failure from e

    report = ResetReport(results=tuple(results))
    logger.info("Reset finished: %d row(s) deleted", report.total_deleted)
    emit("reset_finished", {
        "total_deleted": report.total_deleted,
        "summary": report.summary,
    })
    return report


__all__ = [
    "DEFAULT_OPERATIONAL_TABLES",
    "USERS_TABLE",
    "TableCleanupResult",
    "ResetReport",
    "ResetOptions",
    "reset_operational_data",
]
