"""
Command-line operational data reset.

    RESET_USERS=false python -m fleet_db.maintenance
    RESET_USERS=true  python -m fleet_db.maintenance   # also purges non-admin users

Loads .env, runs the reset on the configured backend, prints the per-table
summary and exits 1 on failure. The connection pool is closed on every path.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional, TextIO

from ..config import load_config
from ..core import FleetDB
from ..errors import describe_failure
from .reset import ResetOptions, ResetReport, reset_operational_data

logger = logging.getLogger(__name__)


def _print_summary(report: ResetReport, out: TextIO) -> None:
    print("Reset summary:", file=out)
    for table, info in report.summary.items():
        if info["skipped"]:
            print(f"  {table}: table does not exist", file=out)
        else:
            print(f"  {table}: {info['deleted']} row(s) deleted", file=out)
    print(f"  total: {report.total_deleted} row(s) deleted", file=out)


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(
        prog="python -m fleet_db.maintenance",
        description="Empty the operational tables of the fleet database.",
    )
    ap.add_argument("--env-file", default=None,
                    help=".env file to load (default: nearest .env)")
    ap.add_argument("--table", action="append", dest="tables",
                    help="table to empty, repeatable, in foreign-key-safe order "
                         "(default: every operational table)")
    args = ap.parse_args(argv)

    cfg = load_config(dotenv_path=args.env_file)
    overrides = {"tables": args.tables} if args.tables else {}
    options = ResetOptions.from_config(cfg, **overrides)

    print(f"Resetting operational data (reset users: "
          f"{'yes, except administrators' if options.reset_users else 'no'})")

    db: Optional[FleetDB] = None
    try:
        db = FleetDB.from_config(cfg)
        print(f"Backend: {db.kind.value}")
        report = reset_operational_data(db.database, options)
    except Exception as e:
        logger.error("Operational data reset failed: %s", e)
        payload = describe_failure(e, production=cfg.production)
        print(f"Reset failed: {payload['error']}. {payload['message']}", file=sys.stderr)
        if "detail" in payload:
            print(payload["detail"], file=sys.stderr)
        return 1
    finally:
        if db is not None:
            db.close()

    _print_summary(report, sys.stdout)
    return 0


if __name__ == "__main__":
    sys.exit(main())
