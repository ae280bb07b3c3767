from __future__ import annotations

import json
import sys
from typing import Any, Dict

from .base import Reporter, TaskRecord, TaskStatus, get_verbosity

# "<Kind> summary: k=v k=v" status lines, keyed by lower-cased kind.
SUMMARY_KINDS: Dict[str, str] = {
    "inject": "inject",
    "locate": "locate",
}


def parse_summary(message: str) -> tuple[str, Dict[str, str]] | None:
    head, sep, rest = message.partition(":")
    kind, _, suffix = head.strip().lower().rpartition(" ")
    if not sep or suffix != "summary" or kind not in SUMMARY_KINDS:
        return None
    pairs = dict(token.split("=", 1) for token in rest.split() if "=" in token)
    return SUMMARY_KINDS[kind], pairs


class JsonLinesReporter(Reporter):
    """One JSON object per line on stdout, for tooling."""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout
        self._tasks: Dict[str, TaskRecord] = {}

    def _emit(self, obj: dict) -> None:
        self.stream.write(json.dumps(obj, sort_keys=True) + "\n")

    def start_task(self, task_id: str, name: str, **meta: Any) -> None:
        self._tasks[task_id] = TaskRecord(task_id, name, meta=meta)
        self._emit({"event": "task_start", "id": task_id, "name": name, **meta})

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
        self._emit(
            {
                "event": "task_end",
                "id": task_id,
                "status": status.name.lower(),
                "duration_seconds": rec.duration,
                **rec.meta,
            }
        )

    def _message(self, message: str, level: str, **fields: Any) -> None:
        self._emit({"event": "status", "message": message, "level": level, **fields})

    def status(self, message: str, **fields: Any) -> None:
        summary = parse_summary(message)
        if summary is not None:
            kind, pairs = summary
            self._emit(
                {
                    "event": "summary",
                    "summary_type": kind,
                    "raw": message,
                    **pairs,
                    **fields,
                }
            )
        self._message(message, "info", **fields)

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        if get_verbosity() < level:
            return
        self._message(message, f"verbose{level}", vlevel=level, **fields)

    def error(self, message: str, **fields: Any) -> None:
        self._message(message, "error", **fields)

    def warning(self, message: str, **fields: Any) -> None:
        self._message(message, "warning", **fields)

    def flush(self) -> None:
        self.stream.flush()
