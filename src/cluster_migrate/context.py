"""Cooperative cancellation and deadlines for long-running commands."""

from __future__ import annotations

import threading
import weakref
from time import monotonic
from typing import Any, Optional

from .errors import ContextCancelledError, DeadlineExceededError

# Upper bound for a single blocking wait so deadlines of ancestors are noticed.
_WAIT_SLICE = 0.1


class RunContext:
    """Cancellation scope threaded through every stage and remote call.

    A child context is bounded by its parent: cancelling the parent cancels
    the child, and a child's deadline never outlives the parent's.
    """

    def __init__(self, parent: Optional["RunContext"] = None, deadline: Optional[float] = None):
        self._parent = parent
        self._deadline = deadline
        self._cancelled = threading.Event()
        self._children: "weakref.WeakSet[RunContext]" = weakref.WeakSet()
        self._lock = threading.Lock()
        if parent is not None:
            if parent.deadline is not None:
                self._deadline = (
                    parent.deadline if deadline is None else min(deadline, parent.deadline)
                )
            parent._adopt(self)

    @classmethod
    def background(cls) -> "RunContext":
        return cls()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def _adopt(self, child: "RunContext") -> None:
        with self._lock:
            self._children.add(child)
        if self._cancelled.is_set():
            child.cancel()

    def with_timeout(self, seconds: float) -> "RunContext":
        return RunContext(parent=self, deadline=monotonic() + seconds)

    def with_cancel(self) -> "RunContext":
        return RunContext(parent=self)

    def cancel(self) -> None:
        self._cancelled.set()
        with self._lock:
            children = list(self._children)
        for child in children:
            child.cancel()

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - monotonic())

    @property
    def error(self) -> Optional[Exception]:
        if self._parent is not None:
            parent_error = self._parent.error
            if parent_error is not None:
                return parent_error
        if self._cancelled.is_set():
            return ContextCancelledError()
        if self._deadline is not None and monotonic() >= self._deadline:
            return DeadlineExceededError()
        return None

    def done(self) -> bool:
        return self.error is not None

    def raise_if_done(self) -> None:
        err = self.error
        if err is not None:
            raise err

    def sleep(self, seconds: float) -> None:
        end = monotonic() + seconds
        while not self.done():
            left = end - monotonic()
            if left <= 0:
                return
            remaining = self.remaining()
            if remaining is not None:
                left = min(left, remaining)
            self._cancelled.wait(min(left, _WAIT_SLICE))

    def wait(self, future: Any) -> Any:
        """Block on a future until it resolves or this context ends."""

        finished = threading.Event()
        future.add_done_callback(lambda _: finished.set())
        while not finished.is_set():
            self.raise_if_done()
            finished.wait(_WAIT_SLICE)
        return future.result()
