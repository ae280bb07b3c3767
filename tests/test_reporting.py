import io
import json
import logging

from precachegen.logging import configure_logging, get_logger
from precachegen.reporting import (
    JsonLinesReporter,
    PlainReporter,
    TaskStatus,
    set_reporter,
    task,
)


def _events(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


def test_jsonl_summary_lines_become_events():
    stream = io.StringIO()
    rep = JsonLinesReporter(stream)
    rep.status("Inject summary: dest=sw.js urls=3 bytes=1.2kB")
    rep.status("Something else: a=1")
    events = _events(stream)
    summaries = [e for e in events if e["event"] == "summary"]
    assert len(summaries) == 1
    assert summaries[0]["summary_type"] == "inject"
    assert summaries[0]["urls"] == "3"
    assert summaries[0]["bytes"] == "1.2kB"
    assert [e["event"] for e in events].count("status") == 2


def test_task_context_reports_failure():
    stream = io.StringIO()
    set_reporter(JsonLinesReporter(stream))
    try:
        with task("inject.build", "Inject"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    ends = [e for e in _events(stream) if e["event"] == "task_end"]
    assert ends[0]["status"] == TaskStatus.FAILED.name.lower()


def test_log_records_reach_the_active_reporter():
    stream = io.StringIO()
    set_reporter(PlainReporter(stream, use_color=False))
    configure_logging(0)
    get_logger("build.InjectManifest").info("will precache %d URLs", 2)
    get_logger().warning("careful")
    get_logger().debug("hidden")
    lines = stream.getvalue().splitlines()
    assert lines == ["INFO: will precache 2 URLs", "WARN: careful"]
    assert get_logger().level == logging.INFO
