from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict, Iterator, Optional

__all__ = [
    "TaskStatus",
    "TaskRecord",
    "Reporter",
    "set_reporter",
    "get_reporter",
    "set_verbosity",
    "get_verbosity",
    "task",
    "format_stats",
]

# Task metadata keys echoed on task completion lines.
STAT_KEYS = ("urls", "bytes", "written", "warnings", "errors")


class TaskStatus(Enum):
    RUNNING = auto()
    SUCCESS = auto()
    FAILED = auto()


@dataclass(slots=True)
class TaskRecord:
    task_id: str
    name: str
    status: TaskStatus = TaskStatus.RUNNING
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    meta: Dict[str, Any] = field(default_factory=dict)

    @property
    def duration(self) -> float:
        return (self.end_time - self.start_time) if self.end_time else 0.0

    def finish(self, status: TaskStatus, meta: Dict[str, Any]) -> None:
        self.status = status
        self.end_time = time.time()
        self.meta.update(meta)


def format_stats(meta: Dict[str, Any]) -> str:
    stats = [f"{k}={meta[k]}" for k in STAT_KEYS if k in meta]
    return f" [{' '.join(stats)}]" if stats else ""


_VERBOSITY: int = 0  # set by the CLI (-v repeats)


def set_verbosity(level: int) -> None:
    global _VERBOSITY
    _VERBOSITY = max(0, level)


def get_verbosity() -> int:
    return _VERBOSITY


class Reporter:
    """Sink for user-facing build output.

    ``status`` lines of the form ``"<Kind> summary: k=v ..."`` are the
    machine-readable results of a command; backends may parse them.
    """

    def start_task(self, task_id: str, name: str, **meta: Any) -> None:
        raise NotImplementedError

    def end_task(
        self,
        task_id: str,
        status: TaskStatus = TaskStatus.SUCCESS,
        **final_meta: Any,
    ) -> None:
        raise NotImplementedError

    def status(self, message: str, **fields: Any) -> None:
        raise NotImplementedError

    def verbose(self, message: str, *, level: int = 1, **fields: Any) -> None:
        pass

    def error(self, message: str, **fields: Any) -> None:
        raise NotImplementedError

    def warning(self, message: str, **fields: Any) -> None:
        self.status(message, **fields)

    def flush(self) -> None:
        pass


_ACTIVE_REPORTER: Reporter | None = None


def set_reporter(rep: Reporter) -> None:
    global _ACTIVE_REPORTER
    _ACTIVE_REPORTER = rep


def get_reporter() -> Reporter:
    global _ACTIVE_REPORTER
    if _ACTIVE_REPORTER is None:
        from .plain import PlainReporter  # local import to avoid cycle

        _ACTIVE_REPORTER = PlainReporter(stream=sys.stderr)
    return _ACTIVE_REPORTER


@contextmanager
def task(task_id: str, name: str, **meta: Any) -> Iterator[Dict[str, Any]]:
    """Report a unit of work; the yielded dict becomes its final stats."""
    rep = get_reporter()
    rep.start_task(task_id, name, **meta)
    stats: Dict[str, Any] = {}
    try:
        yield stats
    except Exception:
        rep.end_task(task_id, TaskStatus.FAILED, **stats)
        raise
    else:
        rep.end_task(task_id, TaskStatus.SUCCESS, **stats)
