"""Stages shared by the migration commands."""

from __future__ import annotations

from typing import Any, Callable, List, Optional

from ..cluster import ClusterClient
from ..context import RunContext
from ..errors import ClusterMigrateError
from ..pipeline.base import Stage, StageStatus
from .reader import MigrationStatusReader

ClientFactory = Callable[[RunContext], ClusterClient]


class ClusterSession:
    """Lazily connected cluster client shared by the stages of one command."""

    def __init__(self, connect: ClientFactory):
        self._connect = connect
        self._client: Optional[ClusterClient] = None

    @property
    def connected(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> ClusterClient:
        if self._client is None:
            raise ClusterMigrateError("not connected to the migration cluster")
        return self._client

    @property
    def reader(self) -> MigrationStatusReader:
        return MigrationStatusReader(self.client)

    def connect(self, ctx: RunContext) -> ClusterClient:
        if self._client is None:
            self._client = self._connect(ctx)
        return self._client

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None


def connect_stage(session: ClusterSession) -> Stage[Any]:
    def run(ctx: RunContext, status: StageStatus, value: Any) -> Any:
        client = session.connect(ctx)
        members = client.member_ids(ctx)
        status.set_text(f"Connected to {len(members)} member(s)")
        return value

    return Stage(
        progress_message="Connecting to the migration cluster",
        success_message="Connected to the migration cluster",
        failure_message="Could not connect to the migration cluster",
        run=run,
    )


def find_migration_stage(session: ClusterSession) -> Stage[Any]:
    def run(ctx: RunContext, status: StageStatus, value: Any) -> str:
        reader = session.reader
        reader.ensure_mapping(ctx)
        return reader.find_migration_in_progress(ctx)

    return Stage(
        progress_message="Finding the migration in progress",
        success_message="Found the migration in progress",
        failure_message="Could not find the migration in progress",
        run=run,
    )


def build_status_stages(session: ClusterSession) -> List[Stage[Any]]:
    return [connect_stage(session), find_migration_stage(session)]
