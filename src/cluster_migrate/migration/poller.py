"""Per-item status polling for a running migration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from ..context import RunContext
from ..errors import (
    ClusterMigrateError,
    ContextCancelledError,
    DeadlineExceededError,
    MigrationTimeoutError,
    StatusNotFoundError,
    UserCancelledError,
    ignore_error,
)
from ..logging_utils import get_logger
from ..pipeline.base import Stage, StageStatus
from .gate import START_TIMEOUT_SECONDS, wait_until_in_progress
from .models import DataStructureInfo, DataStructureMigrationStatus, Status
from .reader import MigrationStatusReader

POLL_INTERVAL_SECONDS = 1.0
PROGRESS_UNAVAILABLE = "Unable to calculate remaining duration and progress"


class PollState(str, Enum):
    CHECKING_OVERALL = "checking_overall"
    CHECKING_ITEM = "checking_item"
    SLEEPING = "sleeping"
    DONE = "done"


class PollOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    IGNORED = "ignored"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PollStep:
    state: PollState
    outcome: Optional[PollOutcome] = None
    report_progress: bool = False


def after_overall(status: Optional[Status]) -> PollStep:
    """Next step once the whole-migration status has been read."""

    if status is Status.COMPLETE:
        return PollStep(PollState.DONE, PollOutcome.SUCCEEDED)
    if status is Status.FAILED:
        return PollStep(PollState.DONE, PollOutcome.FAILED)
    if status in (Status.CANCELED, Status.CANCELING):
        return PollStep(PollState.DONE, PollOutcome.CANCELLED)
    if status is Status.IN_PROGRESS:
        return PollStep(PollState.CHECKING_ITEM, report_progress=True)
    return PollStep(PollState.CHECKING_ITEM)


def after_item(item: Optional[DataStructureMigrationStatus]) -> PollStep:
    """Next step once this item's own status has been read (``None`` if absent)."""

    if item is None:
        return PollStep(PollState.SLEEPING)
    if item.status is Status.COMPLETE:
        return PollStep(PollState.DONE, PollOutcome.SUCCEEDED)
    if item.status is Status.FAILED:
        return PollStep(PollState.DONE, PollOutcome.IGNORED)
    if item.status is Status.CANCELED:
        return PollStep(PollState.DONE, PollOutcome.CANCELLED)
    return PollStep(PollState.SLEEPING)


class ItemStatusPoller:
    """Stage function following one migrated data structure to completion."""

    def __init__(
        self,
        reader: MigrationStatusReader,
        migration_id: str,
        index: int,
        item: DataStructureInfo,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        logger: Optional[logging.Logger] = None,
    ):
        self.reader = reader
        self.migration_id = migration_id
        self.index = index
        self.item = item
        self.poll_interval = poll_interval
        self.logger = logger or get_logger("StatusPoller")

    @property
    def progress_message(self) -> str:
        return f"Migrating {self.item.type}: {self.item.name}"

    def __call__(self, ctx: RunContext, status: StageStatus, value: Any) -> Any:
        try:
            return self._poll(ctx, status)
        except DeadlineExceededError as exc:
            raise MigrationTimeoutError() from exc

    def _check_context(self, ctx: RunContext) -> None:
        err = ctx.error
        if err is None:
            return
        if isinstance(err, DeadlineExceededError):
            raise MigrationTimeoutError() from err
        raise err

    def _poll(self, ctx: RunContext, status: StageStatus) -> Any:
        state = PollState.CHECKING_OVERALL
        item: Optional[DataStructureMigrationStatus] = None
        while True:
            if state is PollState.CHECKING_OVERALL:
                self._check_context(ctx)
                try:
                    overall = self.reader.fetch_status(ctx, self.migration_id)
                except StatusNotFoundError as exc:
                    raise ClusterMigrateError(f"reading migration status: {exc}") from exc
                step = after_overall(overall)
                if step.report_progress:
                    self._report_progress(ctx, status)
                if step.state is PollState.DONE:
                    return self._finish(ctx, step.outcome, item)
                state = step.state
            elif state is PollState.CHECKING_ITEM:
                item = self.reader.fetch_item_status(ctx, self.migration_id, self.index)
                step = after_item(item)
                if step.state is PollState.DONE:
                    return self._finish(ctx, step.outcome, item)
                state = step.state
            elif state is PollState.SLEEPING:
                ctx.sleep(self.poll_interval)
                state = PollState.CHECKING_OVERALL

    def _report_progress(self, ctx: RunContext, status: StageStatus) -> None:
        try:
            progress = self.reader.fetch_overall_progress(ctx, self.migration_id)
        except (ContextCancelledError, DeadlineExceededError):
            raise
        except (ClusterMigrateError, ValueError, TypeError) as exc:
            self.logger.error("Reading progress of migration %s: %s", self.migration_id, exc)
            status.set_text(PROGRESS_UNAVAILABLE)
            return
        status.set_text(self.progress_message)
        status.set_progress(progress.completion)
        status.set_remaining_duration(progress.remaining)

    def _finish(
        self,
        ctx: RunContext,
        outcome: Optional[PollOutcome],
        item: Optional[DataStructureMigrationStatus],
    ) -> Any:
        if outcome is PollOutcome.SUCCEEDED:
            return None
        if outcome is PollOutcome.CANCELLED:
            raise UserCancelledError("migration was cancelled")
        if outcome is PollOutcome.IGNORED:
            detail = item.error if item is not None and item.error else "migration failed"
            raise ignore_error(ClusterMigrateError(detail))
        try:
            errors = self.reader.fetch_errors(ctx, self.migration_id)
        except ClusterMigrateError as exc:
            raise ClusterMigrateError(f"fetching migration errors: {exc}") from exc
        raise ClusterMigrateError(errors)


def build_item_stage(poller: ItemStatusPoller) -> Stage[Any]:
    item = poller.item
    return Stage(
        progress_message=poller.progress_message,
        success_message=f"Migrated {item.type}: {item.name}",
        failure_message=f"Failed migrating {item.type}: {item.name}",
        run=poller,
    )


def create_migration_stages(
    ctx: RunContext,
    reader: MigrationStatusReader,
    migration_id: str,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    start_timeout: float = START_TIMEOUT_SECONDS,
) -> List[Stage[Any]]:
    """Wait for the migration to start, then build one stage per migrated item.

    Item order is fixed here, from the first full status read.
    """

    try:
        wait_until_in_progress(ctx, reader, migration_id, timeout=start_timeout)
    except (MigrationTimeoutError, UserCancelledError, DeadlineExceededError):
        raise
    except ClusterMigrateError as exc:
        raise ClusterMigrateError(f"waiting for migration to be created: {exc}") from exc
    items = reader.discover_data_structures(ctx, migration_id)
    return [
        build_item_stage(
            ItemStatusPoller(reader, migration_id, index, item, poll_interval=poll_interval)
        )
        for index, item in enumerate(items)
    ]
