"""Shared pipeline models."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Generic, Iterator, List, Optional, Sequence, TypeVar

from ..context import RunContext

T = TypeVar("T")


@dataclass(frozen=True)
class StatusSnapshot:
    text: str
    progress: Optional[float] = None
    remaining: Optional[timedelta] = None


class StageStatus:
    """Status cell written by the running stage and sampled by the renderer."""

    def __init__(self, text: str = ""):
        self._lock = threading.Lock()
        self._text = text
        self._progress: Optional[float] = None
        self._remaining: Optional[timedelta] = None

    def set_text(self, text: str) -> None:
        with self._lock:
            self._text = text

    def set_progress(self, progress: Optional[float]) -> None:
        if progress is not None:
            progress = min(1.0, max(0.0, float(progress)))
        with self._lock:
            self._progress = progress

    def set_remaining_duration(self, remaining: Optional[timedelta]) -> None:
        if remaining is not None and remaining < timedelta(0):
            remaining = timedelta(0)
        with self._lock:
            self._remaining = remaining

    def snapshot(self) -> StatusSnapshot:
        with self._lock:
            return StatusSnapshot(self._text, self._progress, self._remaining)


StageFunc = Callable[[RunContext, StageStatus, T], T]


@dataclass(frozen=True)
class Stage(Generic[T]):
    progress_message: str
    success_message: str
    failure_message: str
    run: StageFunc


class StageProvider(ABC, Generic[T]):
    """Ordered source of stages for one pipeline run."""

    @abstractmethod
    def stages(self) -> Sequence[Stage[T]]:
        raise NotImplementedError

    def __iter__(self) -> Iterator[Stage[T]]:
        return iter(self.stages())

    def __len__(self) -> int:
        return len(self.stages())


class FixedProvider(StageProvider[T]):
    def __init__(self, *stages: Stage[T]):
        self._stages: List[Stage[T]] = list(stages)

    def stages(self) -> Sequence[Stage[T]]:
        return self._stages


class LazyProvider(StageProvider[T]):
    """Provider whose stage list is computed once, on first use."""

    def __init__(self, build: Callable[[], Sequence[Stage[T]]]):
        self._build = build
        self._stages: Optional[List[Stage[T]]] = None

    def stages(self) -> Sequence[Stage[T]]:
        if self._stages is None:
            self._stages = list(self._build())
        return self._stages
