"""Fiber scheduler: runs queued callbacks and fibers on a pool of threads."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Optional, Union

from lsylar.fiber import Fiber, FiberState, current_fiber, current_fiber_id
from lsylar.log import logger_root
from lsylar.sync import Thread, set_current_thread_name

Task = Union[Fiber, Callable[[], Any]]

ANY_THREAD = -1
_IDLE_WAIT = 0.1
_DONE = (FiberState.TERM, FiberState.EXCEPT)

_local = threading.local()
_owners_lock = threading.Lock()
_owners: dict[int, tuple["Scheduler", Fiber]] = {}


@dataclass
class _Item:
    task: Task
    thread: int = ANY_THREAD


def _owner() -> Optional[tuple["Scheduler", Fiber]]:
    fiber_id = current_fiber_id()
    if not fiber_id:
        return None
    with _owners_lock:
        return _owners.get(fiber_id)


def current_scheduler() -> Optional["Scheduler"]:
    """The scheduler the caller runs under, or None."""
    sched = getattr(_local, "scheduler", None)
    if sched is not None:
        return sched
    owner = _owner()
    return owner[0] if owner is not None else None


def main_fiber() -> Optional[Fiber]:
    """The fiber that runs the scheduling loop for the caller, or None."""
    fiber = getattr(_local, "main_fiber", None)
    if fiber is not None:
        return fiber
    owner = _owner()
    return owner[1] if owner is not None else None


class Scheduler:
    """Runs callbacks and fibers on worker threads and, optionally, the creating thread."""

    def __init__(self, threads: int = 1, use_caller: bool = True,
                 name: str = "def_scheduler") -> None:
        if threads < 1:
            raise ValueError("threads must be at least 1")
        self._name = name
        self._cond = threading.Condition(threading.RLock())
        self._tasks: list[_Item] = []
        self._threads: list[Thread] = []
        self.thread_ids: list[int] = []
        self._active = 0
        self._idle = 0
        self._stopping = True
        self._auto_stop = False
        self._root_fiber: Optional[Fiber] = None

        if use_caller:
            current_fiber()
            threads -= 1
            if current_scheduler() is not None:
                raise RuntimeError("a scheduler is already bound to this thread")
            _local.scheduler = self
            self._root_fiber = Fiber(self._run_root)
            set_current_thread_name(name)
            _local.main_fiber = self._root_fiber
            self._root_thread = threading.get_native_id()
            self.thread_ids.append(self._root_thread)
        else:
            self._root_thread = -1
        self._thread_count = threads

    def __enter__(self) -> "Scheduler":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def name(self) -> str:
        return self._name

    @property
    def active_thread_count(self) -> int:
        with self._cond:
            return self._active

    @property
    def idle_thread_count(self) -> int:
        with self._cond:
            return self._idle

    def has_idle_threads(self) -> bool:
        return self.idle_thread_count > 0

    def start(self) -> None:
        """Start the worker threads; does nothing if already running."""
        with self._cond:
            if not self._stopping:
                return
            self._stopping = False
            if self._threads:
                raise RuntimeError("scheduler threads are still running")
        root = self._root_fiber
        if root is not None and root.state in _DONE:
            root.reset(self._run_root)
        threads = [Thread(self._run, str(i)) for i in range(self._thread_count)]
        with self._cond:
            self._threads = threads
            self.thread_ids.extend(t.id for t in threads)

    def stop(self) -> None:
        """Run every queued task to completion, then stop the threads."""
        self._auto_stop = True
        root = self._root_fiber
        if root is not None and self._thread_count == 0 and root.state in (
                FiberState.TERM, FiberState.INIT):
            logger_root.debug(f"scheduler: {self._name} stopped")
            with self._cond:
                self._stopping = True
            if self.stopping():
                self._detach()
                return
        if self._stopping and not self._threads and self.stopping():
            self._detach()
            return

        if self._root_thread != -1:
            if current_scheduler() is not self:
                raise RuntimeError("stop must be called from the thread that created the scheduler")
        elif current_scheduler() is self:
            raise RuntimeError("stop cannot be called from a scheduler thread")

        with self._cond:
            self._stopping = True
        for _ in range(self._thread_count):
            self.tickle()

        if root is not None and not self.stopping():
            if root.state in _DONE:
                root.reset(self._run_root)
            root.call()

        with self._cond:
            threads, self._threads = self._threads, []
        for thread in threads:
            thread.join()
        self._detach()

    def _detach(self) -> None:
        if getattr(_local, "scheduler", None) is self:
            _local.scheduler = None
        if self._root_fiber is not None and getattr(_local, "main_fiber", None) is self._root_fiber:
            _local.main_fiber = None

    def schedule(self, task: Task, thread: int = ANY_THREAD) -> bool:
        """Queue a fiber or callable, optionally for one thread id; True if the queue was empty."""
        with self._cond:
            need_tickle = self._schedule_no_lock(task, thread)
        if need_tickle:
            self.tickle()
        return need_tickle

    def schedule_all(self, tasks: Iterable[Task]) -> bool:
        """Queue several tasks for any thread; True if the queue was empty before."""
        need_tickle = False
        with self._cond:
            for task in tasks:
                need_tickle = self._schedule_no_lock(task, ANY_THREAD) or need_tickle
        if need_tickle:
            self.tickle()
        return need_tickle

    def _schedule_no_lock(self, task: Task, thread: int) -> bool:
        if not isinstance(task, Fiber) and not callable(task):
            raise TypeError(f"cannot schedule {task!r}")
        need_tickle = not self._tasks
        self._tasks.append(_Item(task, thread))
        return need_tickle

    def tickle(self) -> None:
        """Wake threads waiting for work."""
        logger_root.debug(f"scheduler: {self._name} tickle!")
        with self._cond:
            self._cond.notify_all()

    def _stopping_locked(self) -> bool:
        return (self._auto_stop and self._stopping
                and not self._tasks and self._active == 0)

    def stopping(self) -> bool:
        """True once stop was requested and no work is queued or running."""
        with self._cond:
            return self._stopping_locked()

    def _run_root(self) -> None:
        self._run(self._root_thread)

    def _switch(self, fiber: Fiber, home: Fiber) -> None:
        with _owners_lock:
            _owners[fiber.id] = (self, home)
        try:
            fiber.swap_in()
        finally:
            with _owners_lock:
                _owners.pop(fiber.id, None)

    def _execute(self, task: Task, cb_fiber: Optional[Fiber], home: Fiber) -> Optional[Fiber]:
        if isinstance(task, Fiber):
            if task.state in _DONE:
                return cb_fiber
            self._switch(task, home)
            if task.state is FiberState.READY:
                self.schedule(task)
            elif task.state not in _DONE:
                task.state = FiberState.HOLD
            return cb_fiber

        if cb_fiber is None:
            cb_fiber = Fiber(task)
        else:
            cb_fiber.reset(task)
        self._switch(cb_fiber, home)
        if cb_fiber.state is FiberState.READY:
            self.schedule(cb_fiber)
            return None
        if cb_fiber.state in _DONE:
            return cb_fiber
        cb_fiber.state = FiberState.HOLD
        return None

    def _run(self, thread_id: Optional[int] = None) -> None:
        logger_root.debug(f"scheduler: {self._name}->run")
        tid = thread_id if thread_id is not None else threading.get_native_id()
        _local.scheduler = self
        home = current_fiber()
        _local.main_fiber = home
        cb_fiber: Optional[Fiber] = None

        while True:
            tickle_me = False
            with self._cond:
                chosen = None
                for index, candidate in enumerate(self._tasks):
                    if candidate.thread != ANY_THREAD and candidate.thread != tid:
                        tickle_me = True
                        continue
                    task = candidate.task
                    if isinstance(task, Fiber) and task.state is FiberState.EXEC:
                        continue
                    chosen = index
                    break
                if chosen is None:
                    if self._stopping_locked():
                        break
                    self._idle += 1
                    self._cond.wait(_IDLE_WAIT)
                    self._idle -= 1
                    continue
                item = self._tasks.pop(chosen)
                self._active += 1
                tickle_me = tickle_me or chosen < len(self._tasks)

            if tickle_me:
                self.tickle()
            try:
                cb_fiber = self._execute(item.task, cb_fiber, home)
            finally:
                with self._cond:
                    self._active -= 1
                    self._cond.notify_all()
        logger_root.debug(f"scheduler: {self._name} run loop ended")