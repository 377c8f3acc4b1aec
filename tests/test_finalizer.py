import io
import logging

import pytest
from rich.console import Console

from conftest import FakeClusterClient, record
from cluster_migrate.errors import FinalizeError
from cluster_migrate.migration.finalizer import MigrationFinalizer
from cluster_migrate.migration.models import DEBUG_LOGS_LIST_PREFIX

MIGRATION_ID = "mig-1"


def make_finalizer(client):
    buffer = io.StringIO()
    console = Console(file=buffer, width=200, color_system=None)
    finalizer = MigrationFinalizer(client, console, logger=logging.getLogger("tests.finalizer"))
    return finalizer, buffer


def test_writes_report_verbatim(ctx, tmp_path):
    report = "Migrated 2 maps\n  orders: 10 entries\n  users: ünïcode\n"
    client = FakeClusterClient(records={MIGRATION_ID: record("COMPLETE", report=report)})
    finalizer, _ = make_finalizer(client)
    path = finalizer.finalize(ctx, MIGRATION_ID, tmp_path)
    assert path == tmp_path / f"migration_report_{MIGRATION_ID}.txt"
    assert path.read_bytes() == report.encode("utf-8")


def test_skips_empty_report(ctx, tmp_path):
    client = FakeClusterClient(records={MIGRATION_ID: record("COMPLETE")})
    finalizer, _ = make_finalizer(client)
    assert finalizer.finalize(ctx, MIGRATION_ID, tmp_path) is None
    assert list(tmp_path.iterdir()) == []


def test_emits_member_logs(ctx, tmp_path, caplog):
    client = FakeClusterClient(
        records={MIGRATION_ID: record("COMPLETE")},
        members=["m1", "m2"],
        lists={
            DEBUG_LOGS_LIST_PREFIX + "m1": ["copied orders"],
            DEBUG_LOGS_LIST_PREFIX + "m2": ["copied users"],
        },
    )
    finalizer, _ = make_finalizer(client)
    with caplog.at_level(logging.INFO, logger="tests.finalizer"):
        finalizer.finalize(ctx, MIGRATION_ID, tmp_path)
    assert f"[{MIGRATION_ID}_m1] copied orders" in caplog.messages
    assert f"[{MIGRATION_ID}_m2] copied users" in caplog.messages


def test_member_log_failure_aborts(ctx, tmp_path):
    client = FakeClusterClient(
        records={MIGRATION_ID: record("COMPLETE", report="report")},
        failing={DEBUG_LOGS_LIST_PREFIX + "member-1": ConnectionError("member gone")},
    )
    finalizer, _ = make_finalizer(client)
    with pytest.raises(FinalizeError, match="finalizing migration: member gone"):
        finalizer.finalize(ctx, MIGRATION_ID, tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_lists_few_warnings(ctx, tmp_path):
    client = FakeClusterClient(
        records={MIGRATION_ID: record("COMPLETE", warnings=["w1", "w2"])}
    )
    finalizer, buffer = make_finalizer(client)
    finalizer.finalize(ctx, MIGRATION_ID, tmp_path)
    assert buffer.getvalue().splitlines() == ["* w1", "* w2"]


def test_summarises_many_warnings(ctx, tmp_path):
    warnings = [f"w{i}" for i in range(6)]
    client = FakeClusterClient(
        records={MIGRATION_ID: record("COMPLETE", warnings=warnings, report="r")}
    )
    finalizer, buffer = make_finalizer(client)
    finalizer.finalize(ctx, MIGRATION_ID, tmp_path)
    output = buffer.getvalue()
    assert "You have 6 warnings that you can find in your migration report" in output
    assert "w0" not in output
