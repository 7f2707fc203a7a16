"""Property-based tests for logging configuration and engine log output."""

import asyncio
import json
import logging
from datetime import datetime
from io import StringIO

import structlog
from hypothesis import given, settings
from hypothesis import strategies as st
from structlog.testing import capture_logs

from synched_model.models.config import LoggingConfig, RetryConfig, SyncConfig
from synched_model.sync.synched_model import SynchedModel
from synched_model.utils.logging_config import (
    build_processors,
    configure_logging,
    configure_logging_from_config,
    get_logger,
)


def _configure_buffer(json_logs: bool = True) -> StringIO:
    """Route structlog output to an in-memory buffer."""
    log_buffer = StringIO()
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG,
        stream=log_buffer,
        force=True,
    )
    structlog.configure(
        processors=build_processors(json_logs),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )
    return log_buffer


@given(
    log_level=st.sampled_from(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]),
    error_message=st.text(min_size=1, max_size=200),
)
@settings(max_examples=50, deadline=None)
def test_json_log_entries_contain_required_fields(log_level: str, error_message: str) -> None:
    """
    Property: every JSON log entry carries timestamp, level, event and call site.
    """
    log_buffer = _configure_buffer(json_logs=True)

    log = get_logger("test_logger")
    getattr(log, log_level.lower())("test_event", error=error_message)

    log_entry = json.loads(log_buffer.getvalue().strip())

    datetime.fromisoformat(log_entry["timestamp"].replace("Z", "+00:00"))
    assert log_entry["level"].upper() == log_level
    assert log_entry["event"] == "test_event"
    assert log_entry["error"] == error_message
    assert log_entry["logger"] == "test_logger"
    assert log_entry["func_name"] == "test_json_log_entries_contain_required_fields"
    assert "lineno" in log_entry


def test_console_renderer_is_not_json() -> None:
    log_buffer = _configure_buffer(json_logs=False)

    get_logger("console").info("console_event", status="in_sync")

    output = log_buffer.getvalue()
    assert "console_event" in output
    assert not output.lstrip().startswith("{")


def test_configure_logging_writes_rotating_file(tmp_path) -> None:
    log_file = tmp_path / "sync.log"
    root_handlers = list(logging.root.handlers)

    try:
        configure_logging(log_level="INFO", json_logs=True, log_file=str(log_file))
        get_logger("file").info("file_event")
    finally:
        for handler in list(logging.root.handlers):
            if handler not in root_handlers:
                handler.close()
                logging.root.removeHandler(handler)
        structlog.reset_defaults()

    entry = json.loads(log_file.read_text().strip().splitlines()[-1])
    assert entry["event"] == "file_event"


def test_configure_from_config_selects_renderer() -> None:
    try:
        configure_logging_from_config(LoggingConfig(log_level="warning", json_logs=False))
        processors = structlog.get_config()["processors"]
    finally:
        structlog.reset_defaults()

    assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)


def test_engine_logs_lifecycle_events() -> None:
    """The engine reports resync attempts, completion and status changes."""

    class FlakySource:
        def __init__(self):
            self.listeners = {}
            self.calls = 0

        def on(self, event, listener):
            self.listeners[str(event.value)] = listener

        def off(self, event, listener):
            self.listeners.pop(str(event.value), None)

        def connect(self):
            self.listeners["connect"]()

        async def fetch(self):
            self.calls += 1
            if self.calls == 1:
                raise ConnectionError("first fetch fails")
            return {"key1": "value1"}

    async def scenario():
        source = FlakySource()
        model = SynchedModel(
            source, config=SyncConfig(retry=RetryConfig(base_delay=0.001))
        )
        while model.resyncing:
            await asyncio.sleep(0.001)
        source.listeners["disconnect"]()
        return model

    with capture_logs() as cap_logs:
        asyncio.run(scenario())

    events = [entry["event"] for entry in cap_logs]
    assert "synched_model_initialized" in events
    assert "resync_started" in events
    assert "retrying_after_error" in events
    assert "resync_completed" in events
    assert "data_source_disconnected" in events

    status_changes = [entry for entry in cap_logs if entry["event"] == "status_changed"]
    assert [entry["status"] for entry in status_changes] == ["in_sync", "out_of_sync"]

    completed = next(entry for entry in cap_logs if entry["event"] == "resync_completed")
    assert completed["failed_attempts"] == 1
