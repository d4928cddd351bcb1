"""Locks, semaphores, named threads and a simple thread pool."""

from __future__ import annotations

import queue
import threading
from concurrent.futures import Future
from typing import Any, Callable, Optional

MAX_TASK_NUM = 100 * 10000

_local = threading.local()


class Mutex:
    """A plain mutual-exclusion lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()

    def lock(self) -> None:
        self._lock.acquire()

    def unlock(self) -> None:
        self._lock.release()

    def locked(self) -> bool:
        return self._lock.locked()

    def __enter__(self) -> "Mutex":
        self.lock()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock()


class ScopedLock:
    """Holds a mutex from creation until unlocked or the block ends."""

    def __init__(self, mutex: Any) -> None:
        self._mutex = mutex
        self._mutex.lock()
        self._locked = True

    def lock(self) -> None:
        if not self._locked:
            self._mutex.lock()
            self._locked = True

    def unlock(self) -> None:
        if self._locked:
            self._mutex.unlock()
            self._locked = False

    def __enter__(self) -> "ScopedLock":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.unlock()


class Semaphore:
    """A counting semaphore."""

    def __init__(self, value: int = 0) -> None:
        self._sem = threading.Semaphore(value)

    def wait(self) -> None:
        self._sem.acquire()

    def post(self, num: int = 1) -> None:
        if num > 0:
            self._sem.release(num)


def current_thread() -> Optional["Thread"]:
    """The Thread object running the caller, or None outside such a thread."""
    return getattr(_local, "thread", None)


def current_thread_name() -> str:
    return getattr(_local, "name", "UNKNOWN")


def set_current_thread_name(name: str) -> None:
    _local.name = name


class Thread:
    """A named thread that is running its callback once construction returns."""

    def __init__(self, callback: Callable[[], Any], name: str = "UNKNOWN") -> None:
        self._name = name
        self.id = 0
        self._callback: Optional[Callable[[], Any]] = callback
        self._started = Semaphore()
        self._thread: Optional[threading.Thread] = threading.Thread(
            target=self._run, name=name, daemon=True
        )
        self._thread.start()
        self._started.wait()

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        self._name = value

    @property
    def ident(self) -> Optional[int]:
        return self._thread.ident if self._thread is not None else None

    def _run(self) -> None:
        _local.thread = self
        _local.name = self._name
        self.id = threading.get_native_id()
        callback, self._callback = self._callback, None
        self._started.post()
        if callback is not None:
            callback()

    def join(self) -> None:
        """Wait for the callback to finish; joining twice is harmless."""
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def to_string(self) -> str:
        return f"tid: {self.id}\nname: {self._name}"

    def __str__(self) -> str:
        return self.to_string()


class ThreadPool:
    """Fixed set of worker threads taking tasks from a shared queue in order."""

    def __init__(self, thread_num: int = 5) -> None:
        if thread_num < 1:
            raise ValueError("thread_num must be at least 1")
        self.thread_num = thread_num
        self._tasks: "queue.Queue[Optional[tuple]]" = queue.Queue(maxsize=MAX_TASK_NUM)
        self._threads: list[Thread] = []
        self._state_lock = threading.Lock()
        self._running = False
        self.start()

    def __enter__(self) -> "ThreadPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._running

    def add_task(self, func: Callable[..., Any], *args: Any) -> Future:
        """Queue func(*args); its outcome arrives through the returned future."""
        future: Future = Future()
        with self._state_lock:
            if not self._running:
                raise RuntimeError("thread pool is not running")
            self._tasks.put((future, func, args))
        return future

    def start(self) -> None:
        with self._state_lock:
            if self._running:
                return
            self._running = True
            self._threads = [
                Thread(self._run, f"thread_pool-{i}") for i in range(self.thread_num)
            ]

    def stop(self) -> None:
        """Let queued tasks finish, then end the workers."""
        with self._state_lock:
            if not self._running:
                return
            self._running = False
            threads, self._threads = self._threads, []
            for _ in threads:
                self._tasks.put(None)
        for thread in threads:
            thread.join()

    def _run(self) -> None:
        while True:
            item = self._tasks.get()
            if item is None:
                return
            future, func, args = item
            if not future.set_running_or_notify_cancel():
                continue
            try:
                future.set_result(func(*args))
            except BaseException as exc:  # noqa: BLE001 - handed to the caller
                future.set_exception(exc)