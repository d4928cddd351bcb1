"""Time helpers, stack traces, assertions and a simple error handler."""

from __future__ import annotations

import itertools
import sys
import time
import traceback
from typing import Any, Callable, Optional

from lsylar.log import logger_root


def cur_time_ms() -> int:
    """Wall-clock time in milliseconds."""
    return time.time_ns() // 1_000_000


def cur_time_us() -> int:
    """Wall-clock time in microseconds."""
    return time.time_ns() // 1_000


def _frames(size: int, skip: int, depth: int) -> list[str]:
    start = sys._getframe(depth)
    collected = [
        f"{frame.f_code.co_filename}:{lineno} {frame.f_code.co_name}"
        for frame, lineno in itertools.islice(traceback.walk_stack(start), max(size, 0))
    ]
    return collected[skip:]


def backtrace(size: int, skip: int) -> list[str]:
    """Up to size frames starting at the caller, innermost first, dropping the first skip."""
    return _frames(size, skip, 2)


def backtrace_to_string(size: int, skip: int, prefix: str) -> str:
    """The backtrace of the caller, one prefixed frame per line."""
    return "".join(f"{prefix}{line}\n" for line in _frames(size, skip, 2))


def timed(func: Callable[..., Any], *args: Any) -> Any:
    """Run func(*args), printing how long it took in microseconds; returns its result."""
    caller = sys._getframe(1)
    where = f"{caller.f_code.co_filename}:{caller.f_lineno}"
    name = getattr(func, "__name__", repr(func))
    print(f"\n[test] {where} {name} is begin......")
    start = cur_time_us()
    result = func(*args)
    end = cur_time_us()
    print(f"[test] {where} {name} is end, using time is {end - start}us")
    return result


def tt_assert(condition: Any, expression: str = "") -> None:
    """Log the assertion and the caller's backtrace, then raise, when condition is false."""
    if condition:
        return
    message = f"ASSERTION:{expression}"
    logger_root.debug(f"{message}\nbacktrace:\n{backtrace_to_string(100, 1, '    ')}")
    raise AssertionError(message)


class ErrHandler:
    """Reports error descriptions and optionally runs a recovery action."""

    def __init__(self, caller: Any = None) -> None:
        self.caller = caller

    def handle_error(
        self,
        desc: str,
        on_error: Optional[Callable[[], None]] = None,
        need_handle: bool = False,
    ) -> None:
        print(desc)
        if need_handle and on_error is not None:
            on_error()