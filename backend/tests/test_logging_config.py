"""
test_logging_config.py — JSON log formatter and logger setup.
"""

import json
import logging
import sys

import pytest

from treatment_pricing.config import LOGGER_PREFIX
from treatment_pricing.services.logging_config import JSONFormatter, setup_logging


def _record(msg="Priced 'Pencil Pleat': 199.92 GBP", **extra):
    record = logging.LogRecord(
        name=f"{LOGGER_PREFIX}.treatment", level=logging.INFO, pathname=__file__,
        lineno=42, msg=msg, args=(), exc_info=None, func="calculate",
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    logger = logging.getLogger(LOGGER_PREFIX)
    handlers, level = list(logger.handlers), logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


class TestJSONFormatter:

    def test_core_fields(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "treatment-pricing.treatment"
        assert entry["message"] == "Priced 'Pencil Pleat': 199.92 GBP"
        assert entry["function"] == "calculate"
        assert entry["line"] == 42
        assert "timestamp" in entry

    def test_structured_extras(self):
        record = _record(template_id=7, treatment_category="curtain", total_cost=199.92, duration_ms=1.5)
        entry = json.loads(JSONFormatter().format(record))
        assert entry["template_id"] == 7
        assert entry["treatment_category"] == "curtain"
        assert entry["total_cost"] == 199.92
        assert entry["duration_ms"] == 1.5

    def test_absent_extras_omitted(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert "total_cost" not in entry

    def test_exception_included(self):
        try:
            raise ValueError("bad drop")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(JSONFormatter().format(record))
        assert "ValueError: bad drop" in entry["exception"]

    def test_non_serialisable_extra(self):
        entry = json.loads(JSONFormatter().format(_record(template_id=object())))
        assert entry["template_id"].startswith("<object")


class TestSetupLogging:

    def test_json_handler(self, restore_root_logger):
        logger = setup_logging("debug", json_output=True)
        assert logger is restore_root_logger
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_text_handler(self, restore_root_logger):
        logger = setup_logging("WARNING", json_output=False)
        assert logger.level == logging.WARNING
        assert not isinstance(logger.handlers[0].formatter, JSONFormatter)

    def test_repeated_setup_does_not_stack_handlers(self, restore_root_logger):
        setup_logging(json_output=True)
        logger = setup_logging(json_output=True)
        assert len(logger.handlers) == 1

    def test_unknown_level_defaults_to_info(self, restore_root_logger):
        assert setup_logging("chatty", json_output=True).level == logging.INFO
