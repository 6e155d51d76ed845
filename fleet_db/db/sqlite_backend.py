"""
SQLite backend for fleet_db.

Used for:
    - local development
    - tests
    - single-machine deployments without DATABASE_URL

One connection is opened per process and shared by every caller. It runs
in autocommit mode (isolation_level=None): each statement commits on its
own unless it sits inside an explicit BEGIN ... COMMIT issued by the
transaction helper. A re-entrant lock serializes callers from different
threads; a transaction keeps the lock until it commits or rolls back.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Sequence, Tuple

from .backend_base import BackendKind, DBBackend
from .translator import passthrough

logger = logging.getLogger(__name__)


# ----------------------------------------------------------------------
# Canonical Schema
# ----------------------------------------------------------------------

SQL_SCHEMA = """
-- ------------------------------------------------------------
-- Accounts
-- ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS users (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT NOT NULL,
    email       TEXT UNIQUE NOT NULL,
    role        TEXT NOT NULL DEFAULT 'user',
    created_at  TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- ------------------------------------------------------------
-- Master data (never touched by a reset)
-- ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS manufacturers (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT UNIQUE NOT NULL
);

CREATE TABLE IF NOT EXISTS vehicle_models (
    id               INTEGER PRIMARY KEY AUTOINCREMENT,
    manufacturer_id  INTEGER NOT NULL,
    name             TEXT NOT NULL,
    FOREIGN KEY (manufacturer_id) REFERENCES manufacturers(id)
);

-- ------------------------------------------------------------
-- Operational data
-- ------------------------------------------------------------
CREATE TABLE IF NOT EXISTS owners (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    name        TEXT,
    document    TEXT
);

CREATE TABLE IF NOT EXISTS vehicles (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    plate       TEXT,
    registry    TEXT,
    owner_id    INTEGER,
    model_id    INTEGER,
    user_id     INTEGER,
    FOREIGN KEY (owner_id) REFERENCES owners(id),
    FOREIGN KEY (model_id) REFERENCES vehicle_models(id),
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS ownership_history (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id  INTEGER NOT NULL,
    owner_id    INTEGER NOT NULL,
    started_on  TEXT,
    ended_on    TEXT,
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id),
    FOREIGN KEY (owner_id) REFERENCES owners(id)
);

CREATE TABLE IF NOT EXISTS vehicle_shares (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id  INTEGER NOT NULL,
    user_id     INTEGER NOT NULL,
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id),
    FOREIGN KEY (user_id) REFERENCES users(id)
);

CREATE TABLE IF NOT EXISTS maintenance_records (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id   INTEGER NOT NULL,
    description  TEXT,
    performed_on TEXT,
    amount       REAL,
    kind         TEXT,
    image        TEXT,
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id)
);

CREATE TABLE IF NOT EXISTS fuel_records (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id   INTEGER NOT NULL,
    liters       REAL,
    amount       REAL,
    filled_on    TEXT,
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id)
);

CREATE TABLE IF NOT EXISTS mileage_history (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    vehicle_id   INTEGER NOT NULL,
    km           INTEGER NOT NULL,
    recorded_on  TEXT,
    FOREIGN KEY (vehicle_id) REFERENCES vehicles(id)
);

CREATE TABLE IF NOT EXISTS ocr_usage (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id      INTEGER,
    used_at      TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (user_id) REFERENCES users(id)
);
"""


# ----------------------------------------------------------------------
# Backend implementation
# ----------------------------------------------------------------------

class SQLiteBackend(DBBackend):
    """
    Embedded single-file backend.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file. The file (and its parent
        directory) is created on open if missing.
    """

    kind = BackendKind.EMBEDDED_FILE

    table_exists_sql = (
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?"
    )

    def __init__(self, db_path: str):
        self.path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    def open(self) -> None:
        """
        Open the shared connection with dict-like rows.

        Also ensures foreign keys are enforced.
        """
        with self._lock:
            if self._conn is not None:
                return

            if str(self.path) != ":memory:":
                self.path.parent.mkdir(parents=True, exist_ok=True)

            conn = sqlite3.connect(
                str(self.path),
                isolation_level=None,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON;")

            self._conn = conn
            logger.info("Opened SQLite database at %s", self.path)

    def close(self) -> None:
        with self._lock:
            if self._conn is None:
                return
            self._conn.close()
            self._conn = None
            logger.info("Closed SQLite database at %s", self.path)

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @contextmanager
    def lease(self) -> Iterator[sqlite3.Connection]:
        with self._lock:
            if self._conn is None:
                self.open()
            yield self._conn

    # ------------------------------------------------------------------
    # Dialect
    # ------------------------------------------------------------------

    def translate(self, query: str, params: Sequence = ()) -> Tuple[str, tuple]:
        return passthrough(query, params)

    def _generated_id(self, cur: Any, rows: list) -> Optional[int]:
        return cur.lastrowid

    # ------------------------------------------------------------------
    # Schema initializer
    # ------------------------------------------------------------------

    def init_schema(self) -> None:
        """
        Create tables if they do not exist.

        Idempotent – safe to call multiple times.
        """
        with self.lease() as conn:
            conn.executescript(SQL_SCHEMA)
