"""Tests for logging setup."""
import json
import logging

import pytest

from transaction_import.log import LOGGER_NAME, get_logger, setup_logging


@pytest.fixture(autouse=True)
def detach_handlers():
    yield
    # handlers created under capsys point at its buffer
    logging.getLogger(LOGGER_NAME).handlers.clear()


class TestLogging:

    def test_json_lines(self, capsys):
        setup_logging("INFO", "json")
        get_logger("tests").info("Downloaded object", extra={"bucket": "in-bucket", "bytes": 12})

        data = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
        assert data["message"] == "Downloaded object"
        assert data["level"] == "INFO"
        assert data["logger"] == "transaction_import.tests"
        assert data["bucket"] == "in-bucket"
        assert data["bytes"] == 12

    def test_text_format(self, capsys):
        setup_logging("INFO", "text")
        get_logger("tests").warning("Skipping malformed line")
        assert "WARNING - Skipping malformed line" in capsys.readouterr().out

    def test_level_filters(self, capsys):
        setup_logging("WARNING", "text")
        get_logger("tests").info("quiet")
        assert capsys.readouterr().out == ""

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging("LOUD", "text").level == logging.INFO

    def test_module_names_are_not_double_prefixed(self):
        assert get_logger("transaction_import.storage").name == "transaction_import.storage"
