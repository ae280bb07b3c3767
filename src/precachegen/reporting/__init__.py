"""User-facing output backends (plain, rich, JSON lines, silent)."""

from .base import (
    Reporter,
    TaskStatus,
    format_stats,
    get_reporter,
    get_verbosity,
    set_reporter,
    set_verbosity,
    task,
)
from .jsonl import JsonLinesReporter, parse_summary
from .plain import PlainReporter
from .rich_reporter import RichReporter
from .silent import SilentReporter

__all__ = [
    "Reporter",
    "TaskStatus",
    "format_stats",
    "get_reporter",
    "get_verbosity",
    "set_reporter",
    "set_verbosity",
    "task",
    "JsonLinesReporter",
    "parse_summary",
    "PlainReporter",
    "RichReporter",
    "SilentReporter",
]
