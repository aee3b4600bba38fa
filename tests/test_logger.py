import logging
from datetime import datetime

import pytest

from mpfhost.logger import DEFAULT_FORMAT, Level, Logger, level_to_string


@pytest.fixture(autouse=True)
def reset_instance():
    Logger.set_instance(None)
    yield
    Logger.set_instance(None)


@pytest.mark.parametrize(
    "level, label",
    [
        (Level.TRACE, "TRACE"),
        (Level.DEBUG, "DEBUG"),
        (Level.INFO, "INFO "),
        (Level.WARNING, "WARN "),
        (Level.ERROR, "ERROR"),
    ],
)
def test_level_to_string(level, label):
    assert level_to_string(level) == label


def test_unknown_level_label():
    assert level_to_string(99) == "?????"


def test_labels_have_fixed_width():
    assert {len(level_to_string(level)) for level in Level} == {5}


def test_default_format_message():
    logger = Logger()
    assert logger.format == DEFAULT_FORMAT
    assert logger.format_message(Level.INFO, "net", "hello") == "[INFO ] [net] hello"


def test_time_and_date_placeholders():
    logger = Logger("%date% %time% %message%")
    before = datetime.now().date()
    text = logger.format_message(Level.DEBUG, "t", "m")
    after = datetime.now().date()
    date_part, time_part, message_part = text.split(" ")
    assert message_part == "m"
    parsed_date = datetime.strptime(date_part, "%Y-%m-%d").date()
    assert parsed_date in (before, after)
    assert len(time_part) == 12
    parsed_time = datetime.strptime(time_part, "%H:%M:%S.%f").time()
    assert parsed_time.microsecond % 1000 == 0


def test_handler_receives_messages():
    logger = Logger()
    received = []
    logger.set_handler(lambda level, tag, msg: received.append((level, tag, msg)))
    logger.warning("core", "disk low")
    logger.error("core", "failed")
    assert received == [(Level.WARNING, "core", "disk low"), (Level.ERROR, "core", "failed")]


def test_min_level_filters():
    logger = Logger()
    received = []
    logger.set_handler(lambda level, tag, msg: received.append(level))
    logger.trace("t", "dropped at default level")
    logger.min_level = Level.WARNING
    logger.info("t", "dropped")
    logger.warning("t", "kept")
    assert received == [Level.WARNING]
    assert logger.min_level is Level.WARNING


def test_routes_to_logging_module(caplog):
    caplog.set_level(logging.DEBUG, logger="mpfhost")
    logger = Logger()
    logger.info("app", "started")
    logger.error("app", "crashed")
    records = [(r.levelno, r.getMessage()) for r in caplog.records if r.name == "mpfhost"]
    assert records == [
        (logging.INFO, "[INFO ] [app] started"),
        (logging.CRITICAL, "[ERROR] [app] crashed"),
    ]


def test_first_logger_becomes_instance():
    first = Logger()
    Logger()
    assert Logger.instance() is first


def test_set_instance():
    Logger()
    other = Logger()
    Logger.set_instance(other)
    assert Logger.instance() is other