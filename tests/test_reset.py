import sqlite3

import pytest

from fleet_db import FleetDBConfig, SchemaCheckError, TransactionFailure
from fleet_db.maintenance import (
    DEFAULT_OPERATIONAL_TABLES,
    ResetOptions,
    ResetReport,
    TableCleanupResult,
    reset_operational_data,
)


def test_reset_two_tables_scenario(fleet):
    v1 = fleet.execute("INSERT INTO vehicles (plate) VALUES (?)", ("AAA0001",)).insert_id
    v2 = fleet.execute("INSERT INTO vehicles (plate) VALUES (?)", ("BBB0002",)).insert_id
    for vehicle_id in (v1, v1, v2):
        fleet.execute("INSERT INTO maintenance_records (vehicle_id) VALUES (?)", (vehicle_id,))

    report = fleet.reset_operational_data(
        ResetOptions(tables=("maintenance_records", "vehicles"))
    )
    assert list(report) == [
        TableCleanupResult(table="maintenance_records", deleted=3, skipped=False),
        TableCleanupResult(table="vehicles", deleted=2, skipped=False),
    ]
    assert report.total_deleted == 5
    assert report.summary == {
        "maintenance_records": {"deleted": 3, "skipped": False},
        "vehicles": {"deleted": 2, "skipped": False},
    }


def test_default_reset_keeps_users_and_master_data(seeded, count_rows):
    users_before = count_rows(seeded, "users")
    report = seeded.reset_operational_data()

    assert [r.table for r in report] == list(DEFAULT_OPERATIONAL_TABLES)
    assert report.total_deleted == 3 + 2 + 1 + 1 + 1
    for table in DEFAULT_OPERATIONAL_TABLES:
        assert count_rows(seeded, table) == 0
    assert count_rows(seeded, "users") == users_before
    assert count_rows(seeded, "manufacturers") == 1
    assert count_rows(seeded, "vehicle_models") == 1


def test_reset_users_keeps_only_administrators(seeded):
    report = seeded.reset_operational_data(ResetOptions(reset_users=True))

    assert report.results[-1] == TableCleanupResult(table="users", deleted=2)
    remaining = seeded.query_many("SELECT email, role FROM users ORDER BY email").rows
    assert remaining == [
        {"email": "admin@fleet.local", "role": "user"},
        {"email": "root@fleet.local", "role": "admin"},
    ]


def test_reset_options_from_config():
    cfg = FleetDBConfig(reset_users=True, admin_email="boss@fleet.local", admin_role="owner")
    options = ResetOptions.from_config(cfg, tables=["vehicles"])
    assert options.reset_users is True
    assert options.admin_email == "boss@fleet.local"
    assert options.admin_role == "owner"
    assert options.tables == ("vehicles",)


def test_absent_table_is_skipped_and_rest_processed(seeded):
    seeded.execute("DELETE FROM fuel_records")
    seeded.execute("DELETE FROM mileage_history")

    report = seeded.reset_operational_data(
        ResetOptions(tables=("maintenance_records", "ghost_table", "vehicles"))
    )
    assert [(r.table, r.deleted, r.skipped) for r in report] == [
        ("maintenance_records", 3, False),
        ("ghost_table", 0, True),
        ("vehicles", 2, False),
    ]
    assert report.total_deleted == 5


def test_reset_is_idempotent_on_empty_data(fleet):
    first = fleet.reset_operational_data()
    second = fleet.reset_operational_data()
    assert first.total_deleted == 0
    assert second.total_deleted == 0
    assert all(not r.skipped for r in second)


def test_failure_between_tables_rolls_back_earlier_deletes(seeded, count_rows):
    def fail_after_first(kind, payload):
        if kind == "table_cleaned" and payload["table"] == "maintenance_records":
            raise RuntimeError("simulated crash")

    with pytest.raises(TransactionFailure) as info:
        seeded.reset_operational_data(
            ResetOptions(tables=("maintenance_records", "fuel_records")),
            emit=fail_after_first,
        )

    assert count_rows(seeded, "maintenance_records") == 3
    assert count_rows(seeded, "fuel_records") == 1
    assert info.value.table == "maintenance_records"
    assert isinstance(info.value.__cause__, RuntimeError)


def test_wrong_order_surfaces_foreign_key_error_and_rolls_back(seeded, count_rows):
    with pytest.raises(TransactionFailure) as info:
        seeded.reset_operational_data(
            ResetOptions(tables=("maintenance_records", "owners", "vehicles"))
        )

    assert info.value.table == "owners"
    assert isinstance(info.value.cause, sqlite3.IntegrityError)
    assert count_rows(seeded, "maintenance_records") == 3
    assert count_rows(seeded, "owners") == 1


def test_schema_check_failure_is_reported(seeded, monkeypatch):
    backend = seeded.provider.backend
    monkeypatch.setattr(
        type(backend), "table_exists_sql", "SELECT name FROM no_catalog WHERE name = ?"
    )
    with pytest.raises(TransactionFailure) as info:
        seeded.reset_operational_data(ResetOptions(tables=("vehicles",)))
    assert isinstance(info.value.__cause__, SchemaCheckError)
    assert info.value.__cause__.table == "vehicles"


def test_invalid_table_name_rejected_before_any_work(seeded, count_rows):
    with pytest.raises(ValueError):
        seeded.reset_operational_data(
            ResetOptions(tables=("maintenance_records", "vehicles; DROP TABLE users"))
        )
    assert count_rows(seeded, "maintenance_records") == 3


def test_progress_events(seeded):
    events = []
    reset_operational_data(
        seeded.database,
        ResetOptions(tables=("maintenance_records",)),
        emit=lambda kind, payload: events.append((kind, payload)),
    )
    kinds = [k for k, _ in events]
    assert kinds == ["reset_started", "table_cleaned", "reset_finished"]
    assert events[0][1]["backend"] == "sqlite"
    assert events[1][1] == {"table": "maintenance_records", "deleted": 3, "skipped": False}
    assert events[2][1]["total_deleted"] == 3


def test_failure_event_is_emitted(seeded):
    events = []

    def emit(kind, payload):
        events.append(kind)
        if kind == "table_cleaned":
            raise RuntimeError("stop")

    with pytest.raises(TransactionFailure):
        reset_operational_data(
            seeded.database, ResetOptions(tables=("fuel_records",)), emit=emit
        )
    assert events[-1] == "reset_failed"


def test_report_totals_ignore_skipped_entries():
    report = ResetReport(results=(
        TableCleanupResult("a", 3),
        TableCleanupResult("ghost", 0, True),
        TableCleanupResult("b", 1),
    ))
    assert report.total_deleted == 4
    assert len(report) == 3
    assert report.to_dict()["total_deleted"] == 4
    assert report.to_dict()["results"][1] == {"table": "ghost", "deleted": 0, "skipped": True}


def test_finished_event_is_sent_after_commit(seeded):
    backend = seeded.provider.backend
    in_transaction = []

    def emit(kind, payload):
        if kind == "reset_finished":
            with backend.lease() as conn:
                in_transaction.append(conn.in_transaction)

    seeded.reset_operational_data(ResetOptions(tables=("fuel_records",)), emit=emit)
    assert in_transaction == [False]


def test_commit_failure_reports_only_the_failure(seeded, monkeypatch, count_rows):
    backend = seeded.provider.backend

    def failing_commit(conn):
        raise sqlite3.OperationalError("disk I/O error")

    monkeypatch.setattr(backend, "commit", failing_commit)
    events = []
    with pytest.raises(TransactionFailure) as info:
        seeded.reset_operational_data(
            ResetOptions(tables=("fuel_records",)),
            emit=lambda kind, payload: events.append(kind),
        )

    assert "reset_finished" not in events
    assert events[-1] == "reset_failed"
    assert info.value.table is None
    assert isinstance(info.value.__cause__, sqlite3.OperationalError)
    assert count_rows(seeded, "fuel_records") == 1


def test_facade_reset_follows_configured_user_purge(seeded, config):
    from dataclasses import replace

    seeded.config = replace(config, reset_users=True)
    report = seeded.reset_operational_data()
    assert report.results[-1] == TableCleanupResult(table="users", deleted=2)
