"""Data model of the remote migration status record."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Dict, List, Optional

STATUS_MAP_NAME = "__datamigration_migrations"
START_QUEUE_NAME = "__datamigration_start_queue"
CANCEL_QUEUE_NAME = "__datamigration_cancel_queue"
MIGRATIONS_IN_PROGRESS_LIST = "__datamigrations_in_progress"
DEBUG_LOGS_LIST_PREFIX = "__datamigration_debug_logs_"


class Status(str, Enum):
    STARTED = "STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETE = "COMPLETE"
    FAILED = "FAILED"
    CANCELING = "CANCELING"
    CANCELED = "CANCELED"

    @property
    def is_terminal(self) -> bool:
        return self not in (Status.STARTED, Status.IN_PROGRESS)

    @classmethod
    def parse(cls, value: Any) -> Optional["Status"]:
        """Return the matching member, or ``None`` for values this CLI does not know."""

        try:
            return cls(str(value).strip().strip('"'))
        except ValueError:
            return None


@dataclass(frozen=True)
class DataStructureInfo:
    name: str
    type: str


@dataclass(frozen=True)
class DataStructureMigrationStatus:
    name: str
    type: str
    status: Optional[Status]
    completion_percentage: float = 0.0
    error: str = ""

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "DataStructureMigrationStatus":
        return cls(
            name=raw.get("name", ""),
            type=raw.get("type", ""),
            status=Status.parse(raw.get("status")),
            completion_percentage=float(raw.get("completionPercentage") or 0.0),
            error=raw.get("error") or "",
        )


@dataclass(frozen=True)
class OverallMigrationStatus:
    status: Optional[Status]
    migrations: List[DataStructureMigrationStatus] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    logs: List[str] = field(default_factory=list)
    report: str = ""
    completion_percentage: float = 0.0
    remaining_time_ms: int = 0

    @classmethod
    def from_dict(cls, raw: Dict[str, Any]) -> "OverallMigrationStatus":
        return cls(
            status=Status.parse(raw.get("status")),
            migrations=[
                DataStructureMigrationStatus.from_dict(item)
                for item in raw.get("migrations") or []
            ],
            errors=list(raw.get("errors") or []),
            warnings=list(raw.get("warnings") or []),
            logs=list(raw.get("logs") or []),
            report=raw.get("report") or "",
            completion_percentage=float(raw.get("completionPercentage") or 0.0),
            remaining_time_ms=int(raw.get("remainingTime") or 0),
        )


@dataclass(frozen=True)
class OverallProgress:
    """Whole-migration progress; ``completion`` is a fraction in [0, 1]."""

    completion: float
    remaining: timedelta


@dataclass
class ConfigBundle:
    """Payload offered to the start queue to kick off a migration."""

    migration_id: str
    config_path: str
    source: Dict[str, str] = field(default_factory=dict)
    target: Dict[str, str] = field(default_factory=dict)
    imaps: List[str] = field(default_factory=list)
    replicated_maps: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        raw = asdict(self)
        return {
            "migrationId": raw["migration_id"],
            "configPath": raw["config_path"],
            "source": raw["source"],
            "target": raw["target"],
            "imaps": raw["imaps"],
            "replicatedMaps": raw["replicated_maps"],
        }


def make_migration_id() -> str:
    return str(uuid.uuid4())
