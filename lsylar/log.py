"""Structured logging with pattern based formatters and pluggable appenders."""

from __future__ import annotations

import sys
import time
from enum import IntEnum
from pathlib import Path
from types import FrameType
from typing import Callable, Union

DEFAULT_FORMAT = (
    "/s{[}/l/s{]}/sp"
    "/s{[}/lm/s{]}/sp"
    "/s{>}/sp/m/tab"
    "/ln/s{:}/func/s{::}/fn"
)

_MESSAGE_WIDTH = 56
_SPLIT = "/"
_IGNORED_IN_FORMAT = " \t\n\r"


class LogLevel(IntEnum):
    """Severity of a log event; lower values are more severe."""

    FATAL = 0
    ERROR = 1
    WARN_ = 2
    INFO_ = 3
    DEBUG = 4

    def __str__(self) -> str:
        return self.name


def split_file_name(path: str) -> str:
    """Keep at most the last directory and the file name of a path."""
    separators = [i for i, ch in enumerate(path) if ch == "/"]
    if not separators:
        return path
    keep = min(len(separators), 2)
    return path[separators[-keep] + 1:]


class Event:
    """A single log record together with the message written into it."""

    tab = "\t"
    newline = "\n"
    space = " "

    def __init__(
        self,
        logger_name: str,
        level: LogLevel,
        line: int,
        file_name: str,
        func_name: str = "",
    ) -> None:
        self.logger_name = logger_name
        self.level = LogLevel(level)
        self.line = line
        self.file_name = file_name
        self.func_name = func_name
        self.time = time.time()
        self._parts: list[str] = []

    def write(self, text: object) -> "Event":
        """Append text to the message; returns the event for chaining."""
        self._parts.append(str(text))
        return self

    @property
    def message(self) -> str:
        return "".join(self._parts)

    def formatted_message(self) -> str:
        """The message padded with spaces up to the next multiple of the column width."""
        text = self.message
        padding = _MESSAGE_WIDTH * (len(text) // _MESSAGE_WIDTH + 1) - len(text)
        return text + " " * padding


_ItemFactory = Callable[[str], Callable[[Event], str]]

_FORMAT_ITEMS: dict[str, _ItemFactory] = {
    "l": lambda fmt: lambda e: str(e.level),
    "tab": lambda fmt: lambda e: e.tab,
    "nl": lambda fmt: lambda e: e.newline,
    "m": lambda fmt: lambda e: e.formatted_message(),
    "fn": lambda fmt: lambda e: e.file_name,
    "s": lambda fmt: lambda e: fmt,
    "ln": lambda fmt: lambda e: str(e.line),
    "lm": lambda fmt: lambda e: e.logger_name,
    "func": lambda fmt: lambda e: e.func_name,
    "sp": lambda fmt: lambda e: e.space,
}


class Formatter:
    """Turns an event into text following a '/key{arg}' pattern string."""

    def __init__(self, fmt: str) -> None:
        self.format = fmt
        self._items: list[Callable[[Event], str]] = []
        self._parse()

    def reset_format(self, fmt: str) -> None:
        self.format = fmt
        self._parse()

    def generate(self, event: Event) -> str:
        return "".join(item(event) for item in self._items)

    def _parse(self) -> None:
        pure = "".join(ch for ch in self.format if ch not in _IGNORED_IN_FORMAT)
        splits = [i for i, ch in enumerate(pure) if ch == _SPLIT]
        splits.append(len(pure))
        patterns = [pure[start + 1:end] for start, end in zip(splits, splits[1:])]

        self._items = []
        for pattern in patterns:
            key, arg = pattern, ""
            open_at, close_at = pattern.find("{"), pattern.find("}")
            if open_at != -1 and close_at != -1:
                arg = pattern[open_at + 1:close_at] if close_at > open_at else pattern[open_at + 1:]
                key = pattern[:open_at]
            factory = _FORMAT_ITEMS.get(key)
            if factory is None:
                print(f"error pattern: {key}")
            else:
                self._items.append(factory(arg))


class Appender:
    """Destination for formatted log lines, filtered by level."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG) -> None:
        self.level = LogLevel(level)

    def append(self, text: str) -> None:
        raise NotImplementedError

    def __lshift__(self, text: str) -> "Appender":
        self.append(text)
        return self


class StdoutAppender(Appender):
    """Writes each line to standard output."""

    def append(self, text: str) -> None:
        print(text)


class FileAppender(Appender):
    """Appends each line to a file."""

    def __init__(self, file_name: Union[str, Path], level: LogLevel = LogLevel.DEBUG) -> None:
        super().__init__(level)
        self.file_name = Path(file_name)

    def append(self, text: str) -> None:
        with self.file_name.open("a", encoding="utf-8") as stream:
            stream.write(text + "\n")


class _EventScope:
    """Context manager handing out an event and logging it on exit."""

    def __init__(self, logger: "Logger", event: Event) -> None:
        self._logger = logger
        self._event = event

    def __enter__(self) -> Event:
        return self._event

    def __exit__(self, *exc_info: object) -> None:
        self._logger.log(self._event)


class Logger:
    """Named logger dispatching events to its appenders."""

    def __init__(self, name: str, fmt: str = DEFAULT_FORMAT) -> None:
        self.name = name
        self.formatter = Formatter(fmt)
        self.appenders: list[Appender] = []
        self._default_appender: Appender = StdoutAppender()

    def set_formatter(self, formatter: Union[str, Formatter]) -> None:
        self.formatter = Formatter(formatter) if isinstance(formatter, str) else formatter

    def add_appender(self, appender: Appender) -> None:
        self.appenders.append(appender)

    def log(self, event: Event) -> None:
        if not self.appenders:
            self._default_appender.append(self.formatter.generate(event))
            return
        for appender in self.appenders:
            if appender.level >= event.level:
                appender.append(self.formatter.generate(event))

    def _event_from(self, level: LogLevel, frame: FrameType) -> Event:
        code = frame.f_code
        return Event(self.name, level, frame.f_lineno, split_file_name(code.co_filename), code.co_name)

    def event(self, level: LogLevel) -> _EventScope:
        """Open an event at the caller's location; it is logged when the block ends."""
        return _EventScope(self, self._event_from(level, sys._getframe(1)))

    def debug(self, message: object) -> None:
        self.log(self._event_from(LogLevel.DEBUG, sys._getframe(1)).write(message))

    def info(self, message: object) -> None:
        self.log(self._event_from(LogLevel.INFO_, sys._getframe(1)).write(message))

    def error(self, message: object) -> None:
        self.log(self._event_from(LogLevel.ERROR, sys._getframe(1)).write(message))


logger_system = Logger("SYSTEM")
logger_root = Logger("ROOT__")