from __future__ import annotations

import sys
from typing import Any, Dict

from .base import Reporter, TaskRecord, TaskStatus, format_stats, get_verbosity

ICONS = {
    TaskStatus.SUCCESS: "✔",
    TaskStatus.FAILED: "✖",
}


class PlainReporter(Reporter):
    """Line-oriented reporter; colour only when writing to a terminal."""

    def __init__(self, stream=None, use_color: bool | None = None):
        self.stream = stream or sys.stderr
        if use_color is None:
            use_color = getattr(self.stream, "isatty", lambda: False)()
        self.use_color = use_color
        self._tasks: Dict[str, TaskRecord] = {}

    def _c(self, code: str, text: str) -> str:
        return f"\x1b[{code}m{text}\x1b[0m" if self.use_color else text

    def _line(self, text: str) -> None:
        self.stream.write(text + "\n")

    def start_task(self, task_id: str, name: str, **meta: Any) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, meta=meta)
        if get_verbosity() >= 1:
            self._line(f" … {name}")

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
        self._line(
            f" {ICONS.get(status, '?')} {rec.name} "
            f"({rec.duration:.2f}s){format_stats(rec.meta)}"
        )

    def status(self, message: str, **fields: Any) -> None:
        self._line(f"{self._c('32', 'INFO')}: {message}")

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self._line(f"{self._c('36', f'VERB{level}')}: {message}")

    def error(self, message: str, **fields: Any) -> None:
        self._line(f"{self._c('31', 'ERROR')}: {message}")

    def warning(self, message: str, **fields: Any) -> None:
        self._line(f"{self._c('33', 'WARN')}: {message}")

    def flush(self) -> None:
        flush = getattr(self.stream, "flush", None)
        if flush is not None:
            flush()
