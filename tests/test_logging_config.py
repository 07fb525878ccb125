"""
test_logging_config.py — Tests for printshop/logging_config.py

Sink selection by APP_ENV, the request_id default, LOG_LEVEL and the
stdlib bridge. Records are captured with an extra Loguru sink.

Called by: pytest
Depends on: printshop/logging_config.py
"""

import logging
import os
from unittest.mock import patch

import pytest
from loguru import logger

from printshop.logging_config import NO_REQUEST_ID, is_production, setup_logging


@pytest.fixture(autouse=True)
def _clean_loguru():
    logger.remove()
    yield
    logger.remove()


def _capture(level="DEBUG"):
    records = []
    logger.add(lambda m: records.append(m.record), level=level, format="{message}")
    return records


class TestSinkSelection:
    @pytest.mark.parametrize("env,expected", [("production", True), ("PRODUCTION", True), ("staging", False), ("", False)])
    def test_is_production(self, env, expected):
        with patch.dict(os.environ, {"APP_ENV": env}):
            assert is_production() is expected

    def test_production_writes_json(self):
        with patch.dict(os.environ, {"APP_ENV": "production", "LOG_FILE": "/tmp/quote-engine-test.log"}):
            with patch("loguru.logger.add") as mock_add:
                setup_logging()
        serialized = [c for c in mock_add.call_args_list if c.kwargs.get("serialize") is True]
        assert len(serialized) == 2
        assert serialized[1].args[0] == "/tmp/quote-engine-test.log"
        assert serialized[1].kwargs["rotation"] == "50 MB"

    def test_development_is_human_readable(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}):
            with patch("loguru.logger.add") as mock_add:
                setup_logging()
        (call,) = mock_add.call_args_list
        assert not call.kwargs.get("serialize")
        assert "{extra[request_id]}" in call.kwargs["format"]


class TestRequestContext:
    def test_outside_request_gets_placeholder(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}):
            setup_logging()
        records = _capture()

        with logger.contextualize(request_id="abc12345"):
            logger.info("inside")
        logger.info("outside")

        assert records[-2]["extra"]["request_id"] == "abc12345"
        assert records[-1]["extra"]["request_id"] == NO_REQUEST_ID == "-"

    def test_stdlib_records_reach_loguru(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}):
            setup_logging()
        records = _capture()

        logging.getLogger("printshop.services.quote_service").warning("quote 7 sent")

        assert any(r["message"] == "quote 7 sent" for r in records)
        assert records[-1]["extra"]["request_id"] == "-"


class TestLevels:
    def test_log_level_from_env(self):
        with patch.dict(os.environ, {"APP_ENV": "development", "LOG_LEVEL": "WARNING"}):
            setup_logging()
        messages = []
        logger.add(lambda m: messages.append(str(m)), level="WARNING", format="{message}")

        logger.debug("should be filtered")
        logger.warning("should appear")

        assert any("should appear" in m for m in messages)
        assert not any("should be filtered" in m for m in messages)

    def test_noisy_loggers_quieted(self):
        with patch.dict(os.environ, {"APP_ENV": "development"}):
            setup_logging()
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
