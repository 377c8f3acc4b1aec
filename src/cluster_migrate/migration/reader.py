"""Queries against the remote migration status record."""

from __future__ import annotations

import json
from datetime import timedelta
from typing import Any, List, Optional

from ..cluster import ClusterClient, Row
from ..context import RunContext
from ..errors import ClusterMigrateError, StatusNotFoundError, join_bullets
from .models import (
    DEBUG_LOGS_LIST_PREFIX,
    MIGRATIONS_IN_PROGRESS_LIST,
    STATUS_MAP_NAME,
    DataStructureInfo,
    DataStructureMigrationStatus,
    OverallMigrationStatus,
    OverallProgress,
    Status,
)

NO_REPORTED_ERRORS = "migration failed without reported errors"


class NoDataStructuresError(ClusterMigrateError):
    def __init__(self) -> None:
        super().__init__("no datastructures found to migrate")


class NoMigrationInProgressError(ClusterMigrateError):
    def __init__(self) -> None:
        super().__init__("there are no migrations in progress on the migration cluster")


def _field_query(*paths: str) -> str:
    columns = ", ".join(f"JSON_QUERY(this, '{path}')" for path in paths)
    return f"SELECT {columns} FROM {STATUS_MAP_NAME} WHERE __key = ?"


def _decode(value: Optional[str]) -> Any:
    if value is None:
        return None
    return json.loads(value)


class MigrationStatusReader:
    """Read-only view of one cluster's migration status map."""

    def __init__(self, client: ClusterClient):
        self.client = client

    def _first_row(self, ctx: RunContext, query: str, *params: Any) -> Optional[Row]:
        rows = self.client.execute(ctx, query, *params)
        return rows[0] if rows else None

    def ensure_mapping(self, ctx: RunContext) -> None:
        self.client.execute(
            ctx,
            f"CREATE MAPPING IF NOT EXISTS {STATUS_MAP_NAME} TYPE IMap "
            "OPTIONS('keyFormat'='varchar', 'valueFormat'='json')",
        )

    def fetch_status(self, ctx: RunContext, migration_id: str) -> Optional[Status]:
        row = self._first_row(ctx, _field_query("$.status"), migration_id)
        if row is None or row[0] is None:
            raise StatusNotFoundError()
        return Status.parse(_decode(row[0]))

    def fetch_overall_status(self, ctx: RunContext, migration_id: str) -> OverallMigrationStatus:
        row = self._first_row(
            ctx, f"SELECT this FROM {STATUS_MAP_NAME} WHERE __key = ?", migration_id
        )
        if row is None or row[0] is None:
            raise StatusNotFoundError()
        return OverallMigrationStatus.from_dict(_decode(row[0]))

    def fetch_overall_progress(self, ctx: RunContext, migration_id: str) -> OverallProgress:
        row = self._first_row(
            ctx, _field_query("$.remainingTime", "$.completionPercentage"), migration_id
        )
        if row is None:
            raise ClusterMigrateError("overall progress not found")
        remaining_raw, completion_raw = row[0], row[1]
        if completion_raw is None:
            raise ClusterMigrateError(f"completionPercentage is not available in {STATUS_MAP_NAME}")
        if remaining_raw is None:
            raise ClusterMigrateError(f"remainingTime is not available in {STATUS_MAP_NAME}")
        remaining_ms = int(_decode(remaining_raw))
        completion = float(_decode(completion_raw)) / 100.0
        return OverallProgress(completion=completion, remaining=timedelta(milliseconds=remaining_ms))

    def fetch_item_status(
        self, ctx: RunContext, migration_id: str, index: int
    ) -> Optional[DataStructureMigrationStatus]:
        row = self._first_row(ctx, _field_query(f"$.migrations[{int(index)}]"), migration_id)
        if row is None or row[0] is None:
            return None
        return DataStructureMigrationStatus.from_dict(_decode(row[0]))

    def fetch_errors(self, ctx: RunContext, migration_id: str) -> str:
        row = self._first_row(ctx, _field_query("$.errors"), migration_id)
        if row is None:
            raise ClusterMigrateError("could not fetch migration errors")
        errors = _decode(row[0]) or []
        if not errors:
            return NO_REPORTED_ERRORS
        return join_bullets([str(err) for err in errors])

    def fetch_warnings(self, ctx: RunContext, migration_id: str) -> List[str]:
        row = self._first_row(ctx, _field_query("$.warnings"), migration_id)
        if row is None:
            raise StatusNotFoundError("could not find any warnings")
        return [str(warning) for warning in _decode(row[0]) or []]

    def fetch_report(self, ctx: RunContext, migration_id: str) -> str:
        row = self._first_row(ctx, _field_query("$.report"), migration_id)
        if row is None:
            raise ClusterMigrateError("migration report not found")
        report = _decode(row[0])
        return report if isinstance(report, str) else ""

    def fetch_member_logs(self, ctx: RunContext, member_id: str) -> List[str]:
        return self.client.get_list(ctx, DEBUG_LOGS_LIST_PREFIX + member_id)

    def discover_data_structures(self, ctx: RunContext, migration_id: str) -> List[DataStructureInfo]:
        try:
            overall = self.fetch_overall_status(ctx, migration_id)
        except StatusNotFoundError as exc:
            raise NoDataStructuresError() from exc
        if not overall.migrations:
            raise NoDataStructuresError()
        return [DataStructureInfo(name=item.name, type=item.type) for item in overall.migrations]

    def find_migration_in_progress(self, ctx: RunContext) -> str:
        entries = self.client.get_list(ctx, MIGRATIONS_IN_PROGRESS_LIST)
        if not entries:
            raise NoMigrationInProgressError()
        latest = json.loads(entries[-1])
        migration_id = latest.get("migrationId") if isinstance(latest, dict) else None
        if not migration_id:
            raise ClusterMigrateError("migration in progress has no migrationId")
        return str(migration_id)
