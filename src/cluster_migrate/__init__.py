"""Staged command surface for starting and following cluster data migrations."""

from .config import CLIConfig, ClusterConfig, MigrationConfig, load_cli_config
from .context import RunContext
from .pipeline.base import FixedProvider, LazyProvider, Stage, StageStatus
from .pipeline.executor import execute
from .cli import app

__all__ = [
    "CLIConfig",
    "ClusterConfig",
    "MigrationConfig",
    "load_cli_config",
    "RunContext",
    "FixedProvider",
    "LazyProvider",
    "Stage",
    "StageStatus",
    "execute",
    "app",
]
