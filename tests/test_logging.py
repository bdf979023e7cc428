"""Tests for the logging setups."""
import json
import logging

from toolbridge.client.logging_config import setup_logging as setup_client_logging
from toolbridge.core.logging_config import setup_logging


def test_service_logging_is_json(monkeypatch, capsys):
    monkeypatch.setenv("ENV", "production")
    correlation_id = setup_logging("INFO")

    logging.getLogger("toolbridge.test").info("hello")

    lines = [line for line in capsys.readouterr().out.splitlines() if line.strip()]
    record = json.loads(lines[-1])
    assert record["message"] == "hello"
    assert record["level"] == "INFO"
    assert record["correlation_id"] == correlation_id


def test_client_logging_goes_to_stderr(capsys):
    setup_client_logging("INFO")

    logging.getLogger("toolbridge.test").info("diagnostic")

    captured = capsys.readouterr()
    assert "diagnostic" in captured.err
    assert "diagnostic" not in captured.out
