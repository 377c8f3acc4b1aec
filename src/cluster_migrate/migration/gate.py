"""Bounded wait for a freshly started migration to become visible."""

from __future__ import annotations

from ..context import RunContext
from ..errors import ClusterMigrateError, DeadlineExceededError, MigrationTimeoutError, StatusNotFoundError
from ..logging_utils import get_logger
from .models import Status
from .reader import MigrationStatusReader

START_TIMEOUT_SECONDS = 30.0

logger = get_logger("StartGate")


def wait_until_in_progress(
    ctx: RunContext,
    reader: MigrationStatusReader,
    migration_id: str,
    timeout: float = START_TIMEOUT_SECONDS,
) -> None:
    """Return once the migration reports IN_PROGRESS.

    A missing status record is expected right after the start request and is
    retried immediately. Cancellation of ``ctx`` wins over the local timeout.
    """

    gate_ctx = ctx.with_timeout(timeout)
    while True:
        if gate_ctx.done():
            outer = ctx.error
            if outer is not None:
                raise outer
            raise MigrationTimeoutError("waiting for migration to be created: deadline exceeded")
        try:
            status = reader.fetch_status(gate_ctx, migration_id)
        except (StatusNotFoundError, DeadlineExceededError):
            continue
        if status is Status.FAILED:
            try:
                errors = reader.fetch_errors(gate_ctx, migration_id)
            except ClusterMigrateError as exc:
                raise ClusterMigrateError(
                    f"migration failed and its errors could not be fetched: {exc}"
                ) from exc
            raise ClusterMigrateError(errors)
        if status is Status.IN_PROGRESS:
            logger.debug("Migration %s is in progress", migration_id)
            return
