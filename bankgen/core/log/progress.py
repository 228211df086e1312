"""Progress utilities backed by rich progress bars."""
from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.text import Text


@dataclass
class _Task:
    progress: Progress
    task_id: TaskID

    def advance(self, amount: float = 1.0) -> None:
        self.progress.advance(self.task_id, amount)

    def update(self, **kwargs: object) -> None:
        self.progress.update(self.task_id, **kwargs)


class _RateColumn(ProgressColumn):
    """Render throughput as `<n> <unit>/s`."""

    def __init__(self, unit: str) -> None:
        super().__init__()
        self.unit = unit

    def render(self, task: Task) -> Text:
        speed = task.finished_speed or task.speed
        if speed is None:
            return Text(f"? {self.unit}/s", style="progress.data.speed")
        return Text(f"{speed:,.0f} {self.unit}/s", style="progress.data.speed")


class ProgressManager:
    """Create progress bars that play nicely with logging."""

    def __init__(self) -> None:
        self._console: Console = Console()

    def use_console(self, console: Console) -> None:
        self._console = console

    def reset_console(self) -> None:
        self._console = Console()

    @property
    def console(self) -> Console:
        return self._console

    def _columns(self, unit: str) -> list[object]:
        return [
            TextColumn("[bold blue]{task.description}[/]"),
            BarColumn(bar_width=None),
            TaskProgressColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TimeRemainingColumn(),
            _RateColumn(unit),
        ]

    @contextmanager
    def task(
        self,
        description: str,
        *,
        total: Optional[float] = None,
        unit: str = "items",
        disable: bool = False,
    ) -> Iterator[_Task]:
        progress = Progress(
            *self._columns(unit),
            console=self._console,
            transient=True,
            disable=disable,
        )
        with progress:
            task_id = progress.add_task(description, total=total)
            yield _Task(progress, task_id)


progress_manager = ProgressManager()
