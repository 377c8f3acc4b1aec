"""Sequential stage executor."""

from __future__ import annotations

from typing import List, TypeVar

from ..context import RunContext
from ..errors import IgnorableError, StageFailure, StagesFailedError
from ..logging_utils import get_logger
from .base import StageProvider, StageStatus
from .rendering import StageRenderer

T = TypeVar("T")

logger = get_logger("Pipeline")


def execute(ctx: RunContext, value: T, provider: StageProvider[T], renderer: StageRenderer) -> T:
    """Run every stage of ``provider`` in order, threading ``value`` through.

    A fatal stage error is re-raised unchanged and stops the run. Ignorable
    errors are recorded; the run continues with the previous value and ends
    with :class:`StagesFailedError` listing them.
    """

    ctx.raise_if_done()
    stages = provider.stages()
    total = len(stages)
    failures: List[StageFailure] = []
    for position, stage in enumerate(stages, start=1):
        ctx.raise_if_done()
        renderer.pending(position, total, stage)
        status = StageStatus(stage.progress_message)
        logger.debug("Running stage %s/%s: %s", position, total, stage.progress_message)
        try:
            with renderer.running(position, total, stage, status):
                result = stage.run(ctx, status, value)
        except IgnorableError as exc:
            renderer.failure(position, total, stage, exc.cause, ignored=True)
            failures.append(StageFailure(position, stage, exc.cause))
            logger.debug("Stage %s/%s failed, continuing: %s", position, total, exc.cause)
            continue
        except Exception as exc:
            renderer.failure(position, total, stage, exc, ignored=False)
            raise
        renderer.success(position, total, stage)
        value = result
    if failures:
        raise StagesFailedError(failures, value)
    return value
