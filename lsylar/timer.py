"""Millisecond timers ordered in a red-black tree."""

from __future__ import annotations

import time
from typing import Any, Callable, Iterator, Optional

from lsylar.rbtree import RBNode, RBTree, insert_timer_value
from lsylar.util import cur_time_ms


class Timer(RBNode):
    """A callback due at an absolute time in milliseconds."""

    def __init__(self, when_ms: int, callback: Optional[Callable[[], Any]]) -> None:
        super().__init__(when_ms)
        self.callback = callback

    @property
    def time(self) -> int:
        return self.key


class TimerManager:
    """Keeps timers ordered by expiry so the earliest is found quickly."""

    def __init__(self, clock: Callable[[], int] = cur_time_ms) -> None:
        self._clock = clock
        self.tree = RBTree(insert_timer_value)

    def __len__(self) -> int:
        return len(self.tree)

    def __iter__(self) -> Iterator[Timer]:
        return iter(self.tree)  # type: ignore[arg-type]

    def cur_time(self) -> int:
        return self._clock()

    def add(self, delay_ms: int, callback: Callable[[], Any]) -> Timer:
        """Schedule callback delay_ms from now and return its timer."""
        timer = Timer(delay_ms + self.cur_time(), callback)
        self.tree.insert(timer)
        return timer

    def remove(self, timer: Timer) -> None:
        """Cancel a scheduled timer; raises ValueError if it is not scheduled."""
        self.tree.delete(timer)

    def minimum(self) -> Optional[Timer]:
        """The timer that expires first, or None when nothing is scheduled."""
        return self.tree.minimum()  # type: ignore[return-value]


def handle_timer(timer: Timer) -> Any:
    """Wait until the timer is due, then run its callback and return the result."""
    while True:
        remaining = timer.time - cur_time_ms()
        if remaining <= 0:
            break
        time.sleep(remaining / 1000)
    if timer.callback is None:
        return None
    return timer.callback()