"""Levelled, formatted logging with a pluggable handler."""

from __future__ import annotations

import logging
import threading
from datetime import datetime
from enum import IntEnum
from typing import Callable, ClassVar

DEFAULT_FORMAT = "[%level%] [%tag%] %message%"


class Level(IntEnum):
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4


_LABELS = {
    Level.TRACE: "TRACE",
    Level.DEBUG: "DEBUG",
    Level.INFO: "INFO ",
    Level.WARNING: "WARN ",
    Level.ERROR: "ERROR",
}

_STDLIB_LEVELS = {
    Level.TRACE: logging.DEBUG,
    Level.DEBUG: logging.DEBUG,
    Level.INFO: logging.INFO,
    Level.WARNING: logging.WARNING,
    Level.ERROR: logging.CRITICAL,
}

LogHandler = Callable[[Level, str, str], None]


def level_to_string(level: Level) -> str:
    """Return the fixed five-character label for ``level``."""
    try:
        return _LABELS[Level(level)]
    except ValueError:
        return "?????"


class Logger:
    """Formats messages and routes them to a handler or the logging module.

    The first logger created becomes the shared instance.
    """

    _instance: ClassVar[Logger | None] = None

    def __init__(
        self,
        fmt: str = DEFAULT_FORMAT,
        min_level: Level = Level.DEBUG,
        sink: logging.Logger | None = None,
    ) -> None:
        self._lock = threading.RLock()
        self._format = fmt
        self._min_level = min_level
        self._handler: LogHandler | None = None
        self._sink = sink if sink is not None else logging.getLogger("mpfhost")
        if Logger._instance is None:
            Logger._instance = self

    @property
    def min_level(self) -> Level:
        with self._lock:
            return self._min_level

    @min_level.setter
    def min_level(self, level: Level) -> None:
        with self._lock:
            self._min_level = level

    @property
    def format(self) -> str:
        with self._lock:
            return self._format

    @format.setter
    def format(self, fmt: str) -> None:
        with self._lock:
            self._format = fmt

    def log(self, level: Level, tag: str, message: str) -> None:
        if level < self._min_level:
            return
        with self._lock:
            if self._handler is not None:
                self._handler(level, tag, message)
                return
            formatted = self.format_message(level, tag, message)
            self._sink.log(_STDLIB_LEVELS[Level(level)], formatted)

    def trace(self, tag: str, message: str) -> None:
        self.log(Level.TRACE, tag, message)

    def debug(self, tag: str, message: str) -> None:
        self.log(Level.DEBUG, tag, message)

    def info(self, tag: str, message: str) -> None:
        self.log(Level.INFO, tag, message)

    def warning(self, tag: str, message: str) -> None:
        self.log(Level.WARNING, tag, message)

    def error(self, tag: str, message: str) -> None:
        self.log(Level.ERROR, tag, message)

    def set_handler(self, handler: LogHandler | None) -> None:
        """Send all messages to ``handler`` instead of formatting them."""
        with self._lock:
            self._handler = handler

    def format_message(self, level: Level, tag: str, message: str) -> str:
        now = datetime.now()
        result = self.format
        result = result.replace("%level%", level_to_string(level))
        result = result.replace("%tag%", tag)
        result = result.replace("%message%", message)
        result = result.replace(
            "%time%", f"{now:%H:%M:%S}.{now.microsecond // 1000:03d}"
        )
        result = result.replace("%date%", f"{now:%Y-%m-%d}")
        return result

    @classmethod
    def instance(cls) -> Logger | None:
        return Logger._instance

    @classmethod
    def set_instance(cls, logger: Logger | None) -> None:
        Logger._instance = logger