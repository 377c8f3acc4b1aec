"""Stages that submit a new migration to the migration cluster."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

import yaml

from ..context import RunContext
from ..pipeline.base import Stage, StageStatus
from .models import START_QUEUE_NAME, ConfigBundle
from .stages import ClusterSession, connect_stage

MIGRATION_FILE = "migration.yaml"


def _read_cluster_files(directory: Path) -> Dict[str, str]:
    if not directory.is_dir():
        return {}
    return {
        path.name: path.read_text(encoding="utf-8")
        for path in sorted(directory.iterdir())
        if path.is_file()
    }


def load_config_bundle(migration_id: str, config_dir: Path | str) -> ConfigBundle:
    """Collect the DMT configuration directory into a start request."""

    directory = Path(config_dir).expanduser()
    if not directory.is_dir():
        raise FileNotFoundError(f"DMT config directory not found: {directory}")

    raw: Dict[str, Any] = {}
    migration_file = directory / MIGRATION_FILE
    if migration_file.exists():
        with migration_file.open("r", encoding="utf-8") as handle:
            raw = yaml.safe_load(handle) or {}

    source = _read_cluster_files(directory / "source")
    target = _read_cluster_files(directory / "target")
    if not source or not target:
        raise ValueError(
            f"DMT config directory {directory} must contain source/ and target/ cluster configurations"
        )
    return ConfigBundle(
        migration_id=migration_id,
        config_path=str(directory.resolve()),
        source=source,
        target=target,
        imaps=list(raw.get("imaps") or []),
        replicated_maps=list(raw.get("replicatedMaps") or []),
    )


def build_start_stages(session: ClusterSession, migration_id: str, config_dir: Path | str) -> List[Stage[Any]]:
    def start(ctx: RunContext, status: StageStatus, value: Any) -> str:
        bundle = load_config_bundle(migration_id, config_dir)
        session.reader.ensure_mapping(ctx)
        session.client.offer(ctx, START_QUEUE_NAME, json.dumps(bundle.to_payload()))
        return migration_id

    return [
        connect_stage(session),
        Stage(
            progress_message="Starting the migration",
            success_message="Started the migration",
            failure_message="Could not start the migration",
            run=start,
        ),
    ]
