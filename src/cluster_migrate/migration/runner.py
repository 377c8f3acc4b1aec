"""Drive the per-item polling pipeline and always finalize afterwards."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape

from ..context import RunContext
from ..errors import FinalizeError, make_error_string
from ..logging_utils import get_logger
from ..pipeline.base import LazyProvider
from ..pipeline.executor import execute
from ..pipeline.rendering import StageRenderer
from .finalizer import MigrationFinalizer
from .gate import START_TIMEOUT_SECONDS
from .poller import POLL_INTERVAL_SECONDS, create_migration_stages
from .stages import ClusterSession

logger = get_logger("Migration")


def run_migration(
    ctx: RunContext,
    session: ClusterSession,
    migration_id: str,
    output_dir: Path | str,
    renderer: StageRenderer,
    console: Console,
    poll_interval: float = POLL_INTERVAL_SECONDS,
    start_timeout: float = START_TIMEOUT_SECONDS,
) -> Optional[Path]:
    """Follow migration ``migration_id`` until every item is done.

    The finalizer runs whatever the pipeline outcome. When both fail, the
    finalize error is printed and the pipeline error is raised.
    """

    provider = LazyProvider(
        lambda: create_migration_stages(
            ctx,
            session.reader,
            migration_id,
            poll_interval=poll_interval,
            start_timeout=start_timeout,
        )
    )
    pipeline_error: Optional[Exception] = None
    try:
        execute(ctx, None, provider, renderer)
    except Exception as exc:
        pipeline_error = exc

    finalizer = MigrationFinalizer(session.client, console)
    report_path: Optional[Path] = None
    try:
        report_path = finalizer.finalize(ctx, migration_id, output_dir)
    except FinalizeError as exc:
        if pipeline_error is None:
            raise
        logger.error("Migration %s: %s", migration_id, exc)
        console.print(escape(make_error_string(exc)), highlight=False)

    if pipeline_error is not None:
        raise pipeline_error
    return report_path
