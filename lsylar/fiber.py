"""Stackful fibers: callbacks that can suspend themselves and be resumed later.

Each fiber runs on a helper thread, but control is handed over explicitly so
that only one of a fiber and the code that resumed it runs at any time.
"""

from __future__ import annotations

import itertools
import threading
import weakref
from enum import Enum
from typing import Any, Callable, Optional

from lsylar.log import logger_root

DEFAULT_STACK_SIZE = 1024 * 1024

_ids = itertools.count(1)
_count_lock = threading.Lock()
_fiber_count = 0
_local = threading.local()


class FiberState(Enum):
    INIT = 0
    HOLD = 1
    EXEC = 2
    TERM = 3
    READY = 4
    EXCEPT = 5

    def __str__(self) -> str:
        return self.name


class _FiberAbandoned(BaseException):
    """Raised inside a suspended fiber whose callback was replaced."""


class _Context:
    def __init__(self) -> None:
        self.resume = threading.Semaphore(0)
        self.abandoned = False

    def wait(self) -> None:
        self.resume.acquire()
        if self.abandoned:
            raise _FiberAbandoned


def _change_count(delta: int) -> None:
    global _fiber_count
    with _count_lock:
        _fiber_count += delta


class Fiber:
    """A callback with its own execution stack that can be suspended and resumed."""

    def __init__(self, callback: Optional[Callable[[], Any]], stack_size: int = 0) -> None:
        self.id = next(_ids)
        self.state = FiberState.INIT
        self.callback = callback
        self.stack_size = stack_size or DEFAULT_STACK_SIZE
        self.exception: Optional[BaseException] = None
        self._ctx: Optional[_Context] = None
        self._main: Optional[Fiber] = None
        self._is_main = False
        _change_count(1)
        weakref.finalize(self, _change_count, -1)

    @classmethod
    def _make_main(cls) -> "Fiber":
        fiber = cls.__new__(cls)
        fiber.id = 0
        fiber.state = FiberState.EXEC
        fiber.callback = None
        fiber.stack_size = 0
        fiber.exception = None
        fiber._ctx = _Context()
        fiber._main = None
        fiber._is_main = True
        _change_count(1)
        weakref.finalize(fiber, _change_count, -1)
        return fiber

    def __repr__(self) -> str:
        return f"Fiber(id={self.id}, state={self.state})"

    def _resume_from(self, caller: "Fiber") -> None:
        if caller is self:
            raise RuntimeError("a fiber cannot switch to itself")
        if self._is_main:
            raise RuntimeError("the main fiber cannot be switched in")
        self._main = caller
        if self._ctx is None:
            if self.callback is None:
                raise RuntimeError("fiber has nothing to run")
            ctx = _Context()
            self._ctx = ctx
            threading.Thread(
                target=self._run, args=(ctx,), name=f"fiber-{self.id}", daemon=True
            ).start()
        else:
            self._ctx.resume.release()
        caller._ctx.wait()

    def _suspend(self) -> None:
        if current_fiber() is not self or self._main is None:
            raise RuntimeError("only the running fiber can switch itself out")
        ctx = self._ctx
        self._main._ctx.resume.release()
        ctx.wait()

    def _run(self, ctx: _Context) -> None:
        _local.fiber = self
        try:
            callback = self.callback
            callback()
            self.callback = None
            self.state = FiberState.TERM
        except _FiberAbandoned:
            return
        except BaseException as exc:  # noqa: BLE001 - recorded on the fiber
            self.callback = None
            self.state = FiberState.EXCEPT
            self.exception = exc
            logger_root.debug(f"MainFunc occur except: {exc}")
        if self._ctx is ctx:
            self._ctx = None
        self._main._ctx.resume.release()

    def swap_in(self) -> None:
        """Run the fiber until it suspends or ends; does nothing if it is already running."""
        if self.state is FiberState.EXEC:
            logger_root.debug("cannot swap in a running fiber")
            return
        caller = current_fiber()
        self.state = FiberState.EXEC
        self._resume_from(caller)

    def swap_out(self) -> None:
        """Suspend the running fiber, marking it HOLD unless a yield chose a state."""
        if self.state is FiberState.EXEC:
            self.state = FiberState.HOLD
        self._suspend()

    def call(self) -> None:
        """Switch into the fiber unconditionally."""
        caller = current_fiber()
        self.state = FiberState.EXEC
        self._resume_from(caller)

    def back(self) -> None:
        """Switch from the running fiber back to its caller without changing state."""
        self._suspend()

    def reset(self, callback: Optional[Callable[[], Any]]) -> None:
        """Give the fiber a new callback, discarding any suspended run."""
        if self._is_main:
            raise RuntimeError("the main fiber cannot be reset")
        if current_fiber() is self:
            raise RuntimeError("a running fiber cannot reset itself")
        if self._ctx is not None:
            self._ctx.abandoned = True
            self._ctx.resume.release()
            self._ctx = None
        self.callback = callback
        self.state = FiberState.INIT
        self.exception = None


def current_fiber() -> Fiber:
    """The fiber running the caller; the thread's main fiber is created on first use."""
    fiber = getattr(_local, "fiber", None)
    if fiber is None:
        fiber = Fiber._make_main()
        _local.fiber = fiber
    return fiber


def yield_to_hold() -> None:
    fiber = current_fiber()
    fiber.state = FiberState.HOLD
    fiber.swap_out()


def yield_to_ready() -> None:
    fiber = current_fiber()
    fiber.state = FiberState.READY
    fiber.swap_out()


def total_fibers() -> int:
    with _count_lock:
        return _fiber_count


def current_fiber_id() -> int:
    fiber = getattr(_local, "fiber", None)
    return fiber.id if fiber is not None else 0