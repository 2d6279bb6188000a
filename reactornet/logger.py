"""Process-wide logger writing timestamped, levelled lines."""

from __future__ import annotations

import enum
import sys
import threading
from typing import NoReturn, TextIO

from reactornet.timestamp import Timestamp

MAX_MESSAGE_LENGTH = 1023


class LogLevel(enum.IntEnum):
    """Severity of a log line."""

    INFO = 0
    ERROR = 1
    FATAL = 2
    DEBUG = 3


class FatalError(RuntimeError):
    """Raised after a fatal message has been logged."""


class Logger:
    """Singleton logger; writes to ``stream`` or, when unset, standard output."""

    _instance: Logger | None = None
    _instance_lock = threading.Lock()

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream
        self._lock = threading.Lock()

    @classmethod
    def get_instance(cls) -> Logger:
        """Return the shared logger, creating it on first use."""
        with cls._instance_lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def format(self, level: LogLevel, message: str) -> str:
        """Build the line written for ``message`` at ``level``."""
        return f"[{Timestamp.now()}] {LogLevel(level).name}: {message}"

    def log(self, level: LogLevel, message: str) -> None:
        """Write one log line and flush it."""
        line = self.format(level, message)
        stream = self.stream if self.stream is not None else sys.stdout
        with self._lock:
            stream.write(line + "\n")
            stream.flush()


def _render(message: str, args: tuple) -> str:
    text = message % args if args else message
    return text[:MAX_MESSAGE_LENGTH]


def log_info(message: str, *args) -> None:
    """Log a printf-style message at INFO level."""
    Logger.get_instance().log(LogLevel.INFO, _render(message, args))


def log_error(message: str, *args) -> None:
    """Log a printf-style message at ERROR level."""
    Logger.get_instance().log(LogLevel.ERROR, _render(message, args))


def log_fatal(message: str, *args) -> NoReturn:
    """Log a printf-style message at FATAL level and raise FatalError."""
    text = _render(message, args)
    Logger.get_instance().log(LogLevel.FATAL, text)
    raise FatalError(text)


def log_debug(message: str, *args) -> None:
    """Log a printf-style message at DEBUG level."""
    Logger.get_instance().log(LogLevel.DEBUG, _render(message, args))