from pathlib import Path

import pytest

from conftest import FakeClusterClient
from cluster_migrate.migration.models import START_QUEUE_NAME, Status, make_migration_id
from cluster_migrate.migration.start import build_start_stages, load_config_bundle
from cluster_migrate.migration.stages import ClusterSession
from cluster_migrate.pipeline.base import FixedProvider
from cluster_migrate.pipeline.executor import execute


def make_dmt_dir(root: Path) -> Path:
    directory = root / "dmt"
    for side in ("source", "target"):
        (directory / side).mkdir(parents=True)
        (directory / side / f"{side}.yaml").write_text(f"cluster-name: {side}\n")
    (directory / "migration.yaml").write_text("imaps:\n  - orders\nreplicatedMaps:\n  - users\n")
    return directory


def test_load_config_bundle(tmp_path):
    bundle = load_config_bundle("mig-1", make_dmt_dir(tmp_path))
    payload = bundle.to_payload()
    assert payload["migrationId"] == "mig-1"
    assert payload["imaps"] == ["orders"]
    assert payload["replicatedMaps"] == ["users"]
    assert payload["target"] == {"target.yaml": "cluster-name: target\n"}


def test_missing_config_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config_bundle("mig-1", tmp_path / "nope")


def test_config_directory_needs_cluster_files(tmp_path):
    (tmp_path / "dmt").mkdir()
    with pytest.raises(ValueError):
        load_config_bundle("mig-1", tmp_path / "dmt")


def test_start_stages_submit_bundle(ctx, renderer, tmp_path):
    client = FakeClusterClient()
    session = ClusterSession(lambda ctx: client)
    stages = build_start_stages(session, "mig-1", make_dmt_dir(tmp_path))
    assert execute(ctx, None, FixedProvider(*stages), renderer) == "mig-1"
    assert client.queries[0].startswith("CREATE MAPPING IF NOT EXISTS")
    assert client.offers[0][0] == START_QUEUE_NAME


def test_migration_ids_are_unique():
    assert make_migration_id() != make_migration_id()


def test_status_parse():
    assert Status.parse('"IN_PROGRESS"') is Status.IN_PROGRESS
    assert Status.parse("SOMETHING_NEW") is None
    assert Status.COMPLETE.is_terminal
    assert not Status.STARTED.is_terminal
