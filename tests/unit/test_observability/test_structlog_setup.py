"""Tests for structured logging setup."""

import json

import pytest
import structlog

from lastpost.models.config import LoggingConfig
from lastpost.observability.context import (
    clear_run_id,
    get_run_id,
    run_id_context,
    set_run_id,
)
from lastpost.observability.logging import (
    add_run_id_processor,
    bind_context,
    clear_context,
    configure_from_settings,
    configure_logging,
    get_logger,
    unbind_context,
)


@pytest.fixture
def json_logs(capsys):
    """Route JSON log lines to captured stderr and parse them"""
    configure_logging(level="DEBUG", json_output=True, add_timestamp=False)

    def _read():
        err = capsys.readouterr().err
        return [json.loads(line) for line in err.splitlines() if line.strip()]

    yield _read

    clear_context()
    clear_run_id()
    configure_logging(level="INFO", json_output=False)


class TestRunId:
    def test_set_generates_id(self):
        run_id = set_run_id()

        assert run_id.startswith("run-")
        assert len(run_id) == 16
        assert get_run_id() == run_id
        clear_run_id()

    def test_context_restores_previous(self):
        set_run_id("outer")

        with run_id_context("inner") as run_id:
            assert run_id == "inner"
            assert get_run_id() == "inner"

        assert get_run_id() == "outer"
        clear_run_id()

    def test_context_generates_when_omitted(self):
        with run_id_context() as run_id:
            assert get_run_id() == run_id

        assert get_run_id() is None


class TestRunIdProcessor:
    def test_added_inside_run(self):
        with run_id_context("run-1"):
            result = add_run_id_processor(None, "info", {"event": "x"})

        assert result["run_id"] == "run-1"

    def test_none_marker_outside_run(self):
        clear_run_id()

        result = add_run_id_processor(None, "info", {"event": "x", "count": 2})

        assert result == {"event": "x", "count": 2, "run_id": "none"}


class TestConfigureLogging:
    def test_json_lines_carry_context(self, json_logs):
        with run_id_context("run-42"):
            bind_context(session_key="weekly")
            get_logger("controller", total=3).info("session_started")

        [entry] = json_logs()

        assert entry["event"] == "session_started"
        assert entry["run_id"] == "run-42"
        assert entry["session_key"] == "weekly"
        assert entry["component"] == "controller"
        assert entry["total"] == 3
        assert entry["level"] == "info"

    def test_unbind_context(self, json_logs):
        bind_context(session_key="weekly")
        unbind_context("session_key")

        structlog.get_logger().info("after_unbind")

        [entry] = json_logs()
        assert "session_key" not in entry

    def test_level_filtering(self, json_logs):
        configure_logging(level="WARNING", json_output=True, add_timestamp=False)
        logger = get_logger()

        logger.info("dropped")
        logger.warning("kept")

        assert [e["event"] for e in json_logs()] == ["kept"]

    def test_unknown_level_falls_back_to_info(self, json_logs):
        configure_logging(level="chatty", json_output=True, add_timestamp=False)
        logger = get_logger()

        logger.debug("dropped")
        logger.info("kept")

        assert [e["event"] for e in json_logs()] == ["kept"]

    def test_timestamp_added(self, json_logs):
        configure_logging(level="INFO", json_output=True, add_timestamp=True)

        get_logger().info("stamped")

        [entry] = json_logs()
        assert "timestamp" in entry

    def test_configure_from_settings(self, json_logs):
        configure_from_settings(LoggingConfig(level="error", json_output=True))

        get_logger().warning("dropped")
        get_logger().error("kept")

        assert [e["event"] for e in json_logs()] == ["kept"]
