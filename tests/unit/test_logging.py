"""Unit tests for server log configuration."""

import json
import logging

import pytest
import structlog

from utils.logging import (
    _inject_job_id,
    clear_job_context,
    configure_server_logging,
    set_job_context,
)


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    clear_job_context()
    root.handlers[:] = handlers
    root.setLevel(level)
    structlog.reset_defaults()


def _records(captured: str) -> list[dict]:
    return [json.loads(line) for line in captured.splitlines() if line.strip()]


@pytest.mark.unit
class TestServerLogging:
    """Tests for configure_server_logging."""

    def test_plain_logger_records_carry_job_id(self, capsys, restore_logging):
        configure_server_logging("INFO", json_output=True)
        set_job_context("job-7")

        logging.getLogger("scenereel.jobs").info("rendering started")

        record = _records(capsys.readouterr().err)[-1]
        assert record["event"] == "rendering started"
        assert record["level"] == "info"
        assert record["job_id"] == "job-7"
        assert "timestamp" in record

    def test_structlog_records_keep_their_fields(self, capsys, restore_logging):
        configure_server_logging("INFO", json_output=True)
        set_job_context("job-8")

        structlog.get_logger("scenereel.api").info("video saved", scenes=3)

        record = _records(capsys.readouterr().err)[-1]
        assert record["event"] == "video saved"
        assert record["scenes"] == 3
        assert record["job_id"] == "job-8"

    def test_level_and_noisy_loggers(self, capsys, restore_logging):
        configure_server_logging("warning", json_output=True)

        logging.getLogger("scenereel.jobs").info("hidden")
        assert capsys.readouterr().err == ""
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_no_job_id_outside_a_job(self, capsys, restore_logging):
        configure_server_logging("INFO", json_output=True)
        clear_job_context()

        logging.getLogger("scenereel.jobs").info("idle")

        assert "job_id" not in _records(capsys.readouterr().err)[-1]


@pytest.mark.unit
def test_explicit_job_id_wins(restore_logging):
    set_job_context("from-context")
    event = _inject_job_id(None, "info", {"event": "x", "job_id": "explicit"})
    assert event["job_id"] == "explicit"
