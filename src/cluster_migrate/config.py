"""Configuration dataclasses and helpers for the migration CLI."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

CONFIG_ENV_VAR = "CLUSTER_MIGRATE_CONFIG"


@dataclass
class ClusterConfig:
    name: str = "migration"
    members: list[str] = field(default_factory=lambda: ["127.0.0.1:5701"])
    connect_timeout: float = 30.0


@dataclass
class MigrationConfig:
    poll_interval: float = 1.0
    start_timeout: float = 30.0
    # Overall limit for one command, in seconds; unset waits for the cluster.
    timeout: Optional[float] = None
    output_dir: str = "."


@dataclass
class CLIConfig:
    cluster: ClusterConfig = field(default_factory=ClusterConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    log_level: str = "WARNING"
    log_path: Optional[str] = None

    @property
    def output_path(self) -> Path:
        return Path(self.migration.output_dir).expanduser()


def _load_section(data: Dict[str, Any], section_key: str, target_type: Any) -> Any:
    section = data.get(section_key) or {}
    return target_type(**section)


def default_config_path() -> Optional[Path]:
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return None


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    """Read the YAML config at ``path``; with no path, defaults are used."""

    if path is None:
        path = default_config_path()
    if path is None:
        return CLIConfig()

    config_path = Path(path).expanduser()
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("r", encoding="utf-8") as handle:
        raw: Dict[str, Any] = yaml.safe_load(handle) or {}

    return CLIConfig(
        cluster=_load_section(raw, "cluster", ClusterConfig),
        migration=_load_section(raw, "migration", MigrationConfig),
        log_level=str(raw.get("log_level", CLIConfig.log_level)).upper(),
        log_path=raw.get("log_path", CLIConfig.log_path),
    )
