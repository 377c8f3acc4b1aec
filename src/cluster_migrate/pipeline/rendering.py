"""Terminal rendering of stage lifecycles."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import timedelta
from typing import Any, Iterator, Optional

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.spinner import Spinner
from rich.text import Text

from .base import Stage, StageStatus


def index_text(index: int, total: int) -> str:
    return f"[{index}/{total}]"


def format_remaining(remaining: Optional[timedelta]) -> str:
    if remaining is None:
        return ""
    seconds = int(remaining.total_seconds())
    hours, rest = divmod(seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {seconds}s"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"


class StageRenderer(ABC):
    """Receives lifecycle events for each stage the executor runs."""

    @abstractmethod
    def pending(self, index: int, total: int, stage: Stage[Any]) -> None:
        pass

    @abstractmethod
    @contextmanager
    def running(self, index: int, total: int, stage: Stage[Any], status: StageStatus) -> Iterator[None]:
        yield

    @abstractmethod
    def success(self, index: int, total: int, stage: Stage[Any]) -> None:
        pass

    @abstractmethod
    def failure(
        self, index: int, total: int, stage: Stage[Any], error: BaseException, ignored: bool
    ) -> None:
        pass


class PlainStageRenderer(StageRenderer):
    """Prints one line per finished stage, without a live region."""

    def __init__(self, console: Console):
        self.console = console

    def pending(self, index: int, total: int, stage: Stage[Any]) -> None:
        pass

    @contextmanager
    def running(self, index: int, total: int, stage: Stage[Any], status: StageStatus) -> Iterator[None]:
        yield

    def success(self, index: int, total: int, stage: Stage[Any]) -> None:
        self.console.print(
            f"[bold green]OK[/bold green] {escape(index_text(index, total))} {escape(stage.success_message)}",
            highlight=False,
        )

    def failure(
        self, index: int, total: int, stage: Stage[Any], error: BaseException, ignored: bool
    ) -> None:
        label = "[bold yellow]ERROR[/bold yellow]" if ignored else "[bold red]FAIL[/bold red]"
        self.console.print(
            f"{label} {escape(index_text(index, total))} {escape(stage.failure_message)}: {escape(str(error))}",
            highlight=False,
        )


class _StatusLine:
    """Renderable that samples the latest stage status on every refresh."""

    def __init__(self, index: int, total: int, status: StageStatus):
        self.prefix = index_text(index, total)
        self.status = status
        self.spinner = Spinner("dots")

    def __rich__(self) -> Spinner:
        snapshot = self.status.snapshot()
        line = Text(f"{self.prefix} {snapshot.text}")
        if snapshot.progress is not None:
            line.append(f" {snapshot.progress * 100:.1f}%", style="cyan")
        remaining = format_remaining(snapshot.remaining)
        if remaining:
            line.append(f" ({remaining} left)", style="dim")
        self.spinner.update(text=line)
        return self.spinner


class RichStageRenderer(PlainStageRenderer):
    """Shows a spinner with live status text while a stage runs."""

    def __init__(self, console: Console, refresh_per_second: float = 8):
        super().__init__(console)
        self.refresh_per_second = refresh_per_second

    @contextmanager
    def running(self, index: int, total: int, stage: Stage[Any], status: StageStatus) -> Iterator[None]:
        with Live(
            _StatusLine(index, total, status),
            console=self.console,
            refresh_per_second=self.refresh_per_second,
            transient=True,
            redirect_stdout=True,
            redirect_stderr=True,
        ):
            yield
