"""
Pattern Monitor Test Suite - Logging Configuration Tests
"""

import json
import sys

import pytest
from loguru import logger

from pattern_monitor.core.logging_config import component_logger, configure_logging, is_configured


@pytest.fixture(autouse=True)
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


def test_text_format_includes_component(tmp_path):
    sink = tmp_path / "monitor.log"
    configure_logging(level="INFO", json_format=False, sink=str(sink), enqueue=False)

    component_logger("pattern-monitor").info("stored master bundle")
    logger.info("unbound record")
    logger.debug("below threshold")
    logger.remove()

    lines = sink.read_text().splitlines()
    assert any("pattern-monitor" in line and "stored master bundle" in line for line in lines)
    assert any("| - |" in line and "unbound record" in line for line in lines)
    assert not any("below threshold" in line for line in lines)
    assert is_configured()


def test_json_format(tmp_path):
    sink = tmp_path / "monitor.json"
    configure_logging(level="DEBUG", json_format=True, sink=str(sink), enqueue=False)

    component_logger("pattern-monitor").warning("empty JSON object; skipping")
    logger.remove()

    records = [json.loads(line) for line in sink.read_text().splitlines()]
    match = [r for r in records if r["record"]["message"] == "empty JSON object; skipping"]
    assert len(match) == 1
    assert match[0]["record"]["level"]["name"] == "WARNING"
    assert match[0]["record"]["extra"]["component"] == "pattern-monitor"


def test_env_json_format(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "json")
    sink = tmp_path / "env.json"
    configure_logging(level="INFO", sink=str(sink), enqueue=False)

    logger.info("hello")
    logger.remove()

    first = json.loads(sink.read_text().splitlines()[0])
    assert "record" in first


def test_stdlib_logging_intercepted(tmp_path):
    import logging

    sink = tmp_path / "stdlib.log"
    configure_logging(level="INFO", json_format=False, sink=str(sink), enqueue=False)

    logging.getLogger("redis").warning("connection pool exhausted")
    logger.remove()

    assert "connection pool exhausted" in sink.read_text()
