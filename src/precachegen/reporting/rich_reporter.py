from __future__ import annotations

import os
from typing import Any, Dict

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .base import Reporter, TaskRecord, TaskStatus, format_stats, get_verbosity

_STATUS_ICON = {
    TaskStatus.SUCCESS: "[green]✔[/]",
    TaskStatus.FAILED: "[red]✖[/]",
}


class RichReporter(Reporter):
    """Spinner per running task on a terminal, coloured messages."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(stderr=True, highlight=False)
        # Keep the spinner lines after completion unless asked not to.
        self._transient = os.getenv(
            "PRECACHEGEN_PROGRESS_TRANSIENT", "0"
        ).lower() in ("1", "true", "yes")
        self.progress: Progress | None = None
        self._tasks: Dict[str, TaskRecord] = {}
        self._progress_ids: Dict[str, Any] = {}

    def _ensure_progress(self) -> Progress:
        if self.progress is None:
            self.progress = Progress(
                SpinnerColumn(spinner_name="dots"),
                TextColumn("{task.description}"),
                TimeElapsedColumn(),
                transient=self._transient,
                console=self.console,
            )
            self.progress.start()
        return self.progress

    def start_task(self, task_id: str, name: str, **meta: Any) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, meta=meta)
        self._progress_ids[task_id] = self._ensure_progress().add_task(
            name, total=None
        )

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        rec = self._tasks.pop(task_id, None)
        if not rec:
            return
        rec.finish(status, final_meta)
        pid = self._progress_ids.pop(task_id, None)
        if pid is not None and self.progress is not None:
            self.progress.remove_task(pid)
        if not self._progress_ids:
            self.flush()
        self.console.print(
            f"{_STATUS_ICON.get(status, '')} {rec.name} "
            f"({rec.duration:.2f}s){format_stats(rec.meta)}"
        )

    def status(self, message: str, **fields: Any) -> None:
        self.console.print(f"[green]INFO[/]: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self.console.print(f"[cyan]VERB{level}[/]: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self.console.print(f"[bold red]ERROR[/]: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self.console.print(f"[yellow]WARN[/]: {message}")

    def flush(self) -> None:
        if self.progress is None:
            return
        try:
            self.progress.stop()
        finally:
            self.progress = None
