"""Stages that ask the migration cluster to cancel the running migration."""

from __future__ import annotations

import json
from typing import Any, List

from ..context import RunContext
from ..pipeline.base import Stage, StageStatus
from .models import CANCEL_QUEUE_NAME
from .stages import ClusterSession, connect_stage, find_migration_stage


def build_cancel_stages(session: ClusterSession) -> List[Stage[Any]]:
    def cancel(ctx: RunContext, status: StageStatus, migration_id: str) -> str:
        session.client.offer(ctx, CANCEL_QUEUE_NAME, json.dumps({"migrationId": migration_id}))
        return migration_id

    return [
        connect_stage(session),
        find_migration_stage(session),
        Stage(
            progress_message="Requesting cancellation",
            success_message="Requested cancellation",
            failure_message="Could not request cancellation",
            run=cancel,
        ),
    ]
