import json
import logging

import pytest

from positions_dashboard.logging_config import HANDLER_NAME, JsonFormatter, configure_logging


@pytest.fixture(autouse=True)
def restore_root():
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    yield
    for h in root.handlers[:]:
        if h not in saved_handlers:
            root.removeHandler(h)
    root.setLevel(saved_level)


def _ours():
    return [h for h in logging.getLogger().handlers if h.get_name() == HANDLER_NAME]


def test_json_formatter_single_line():
    record = logging.LogRecord("positions_dashboard.pipeline", logging.INFO, __file__, 12, "parsed %d rows", (3,), None)
    line = JsonFormatter().format(record)
    assert "\n" not in line
    payload = json.loads(line)
    assert payload["message"] == "parsed 3 rows"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "positions_dashboard.pipeline"
    assert payload["source"] == "test_logging_config:12"


def test_rerun_replaces_only_own_handler():
    foreign = logging.NullHandler()
    logging.getLogger().addHandler(foreign)
    configure_logging("INFO")
    handler = configure_logging("DEBUG", json_format=True)
    # one dashboard handler after two calls, the foreign one untouched
    assert _ours() == [handler]
    assert foreign in logging.getLogger().handlers
    assert isinstance(handler.formatter, JsonFormatter)
    assert logging.getLogger().level == logging.DEBUG


def test_quiet_loggers_from_settings():
    configure_logging("DEBUG", quiet_loggers=("urllib3", "fsevents"))
    assert logging.getLogger("urllib3").level == logging.WARNING
    assert logging.getLogger("fsevents").level == logging.WARNING


def test_unknown_level_falls_back_to_info():
    handler = configure_logging("chatty")
    assert handler.level == logging.INFO
