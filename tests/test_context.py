import gc
import threading
from concurrent.futures import Future
from time import monotonic

import pytest

from cluster_migrate.context import RunContext
from cluster_migrate.errors import ContextCancelledError, DeadlineExceededError


def test_background_context_is_live():
    ctx = RunContext.background()
    assert ctx.error is None
    assert ctx.remaining() is None
    ctx.raise_if_done()


def test_timeout_reports_deadline_exceeded():
    ctx = RunContext.background().with_timeout(0.01)
    ctx.sleep(0.05)
    assert isinstance(ctx.error, DeadlineExceededError)
    with pytest.raises(DeadlineExceededError):
        ctx.raise_if_done()


def test_cancelling_parent_cancels_children():
    parent = RunContext.background()
    child = parent.with_timeout(60).with_cancel()
    parent.cancel()
    assert isinstance(child.error, ContextCancelledError)


def test_child_deadline_is_bounded_by_parent():
    parent = RunContext.background().with_timeout(1)
    child = parent.with_timeout(30)
    assert child.deadline == parent.deadline


def test_parent_error_takes_precedence_over_child_deadline():
    parent = RunContext.background()
    child = parent.with_timeout(0.01)
    child.sleep(0.05)
    parent.cancel()
    assert isinstance(child.error, ContextCancelledError)


def test_sleep_wakes_up_on_cancel():
    ctx = RunContext.background()
    threading.Timer(0.05, ctx.cancel).start()
    started = monotonic()
    ctx.sleep(5)
    assert monotonic() - started < 1
    assert ctx.done()


def test_wait_returns_future_result():
    future: Future = Future()
    threading.Timer(0.02, future.set_result, args=("row",)).start()
    assert RunContext.background().wait(future) == "row"


def test_wait_gives_up_when_context_ends():
    ctx = RunContext.background().with_timeout(0.05)
    with pytest.raises(DeadlineExceededError):
        ctx.wait(Future())


def test_parent_does_not_keep_finished_children():
    parent = RunContext.background()
    child = parent.with_timeout(60)
    del child
    gc.collect()
    assert len(parent._children) == 0
    survivor = parent.with_cancel()
    parent.cancel()
    assert isinstance(survivor.error, ContextCancelledError)
