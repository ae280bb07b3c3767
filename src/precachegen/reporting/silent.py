from __future__ import annotations

from typing import Any

from .base import Reporter, TaskStatus


class SilentReporter(Reporter):
    """Discards everything (``-r silent``)."""

    def start_task(self, task_id: str, name: str, **meta: Any) -> None:
        pass

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        pass

    def status(self, message: str, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        pass
