"""Tests for structured logging."""
import json
import logging

from atlas_hybrid.logging_config import (
    HumanFormatter,
    JSONFormatter,
    StructuredLogger,
    configure_logging,
    get_logger,
    log_event,
)


def _record(**extra):
    record = logging.LogRecord("atlas.test", logging.INFO, __file__, 1, "chose layout", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for the log formatters."""

    def test_json_fields(self):
        """Structured fields appear in the JSON line."""
        record = _record(subsystem="service", context="blog", action=3, latency_ms=1.5,
                         event_type="decision", extra_data={"source": "bandit"})
        data = json.loads(JSONFormatter().format(record))
        assert data["message"] == "chose layout"
        assert data["subsystem"] == "service"
        assert data["context"] == "blog"
        assert data["action"] == 3
        assert data["event"] == "decision"
        assert data["latency_ms"] == 1.5
        assert data["source"] == "bandit"

    def test_json_action_zero(self):
        """Action 0 is still reported."""
        data = json.loads(JSONFormatter().format(_record(action=0)))
        assert data["action"] == 0

    def test_human_prefix(self):
        """The human format shows subsystem, context and action."""
        record = _record(subsystem="engine", context="dashboard", action=2, latency_ms=3.0)
        line = HumanFormatter(use_colors=False).format(record)
        assert "[engine]" in line
        assert "ctx=dashboard" in line
        assert "action=2" in line
        assert line.endswith("chose layout (3.0ms)")


class TestConfigureLogging:
    """Tests for configure_logging and log_event."""

    def test_writes_json_file(self, tmp_path):
        """Events reach the JSON log file."""
        configure_logging("DEBUG", log_dir=str(tmp_path))
        try:
            log_event(logging.getLogger("atlas.test"), "feedback", "reward=1.0",
                      subsystem="service", context="blog", action=1)
            for handler in logging.getLogger().handlers:
                handler.flush()
            lines = (tmp_path / "atlas.json.log").read_text().strip().splitlines()
            data = json.loads(lines[-1])
            assert data["event"] == "feedback"
            assert data["action"] == 1
            assert (tmp_path / "atlas.log").exists()
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            root.setLevel(logging.WARNING)
            logging.setLoggerClass(logging.Logger)

    def test_structured_logger_event(self, tmp_path):
        """Loggers created after configuration expose event()."""
        configure_logging("INFO", log_dir=str(tmp_path))
        try:
            logger = get_logger("atlas.test.structured")
            assert isinstance(logger, StructuredLogger)
            logger.event("reset", "engine reset", subsystem="engine", steps=0)
            for handler in logging.getLogger().handlers:
                handler.flush()
            data = json.loads((tmp_path / "atlas.json.log").read_text().strip().splitlines()[-1])
            assert data["event"] == "reset"
            assert data["subsystem"] == "engine"
            assert data["steps"] == 0
        finally:
            root = logging.getLogger()
            for handler in list(root.handlers):
                handler.close()
                root.removeHandler(handler)
            root.setLevel(logging.WARNING)
            logging.setLoggerClass(logging.Logger)
