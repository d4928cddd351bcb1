import threading

import pytest

from lsylar.sync import (
    Mutex,
    ScopedLock,
    Semaphore,
    Thread,
    ThreadPool,
    current_thread,
    current_thread_name,
    set_current_thread_name,
)


def test_mutex_lock_unlock():
    m = Mutex()
    m.lock()
    assert m.locked()
    m.unlock()
    assert not m.locked()
    with m:
        assert m.locked()
    assert not m.locked()


def test_scoped_lock():
    m = Mutex()
    with ScopedLock(m) as guard:
        assert m.locked()
        guard.unlock()
        assert not m.locked()
        guard.unlock()
        assert not m.locked()
        guard.lock()
        assert m.locked()
    assert not m.locked()


def test_semaphore_post_and_wait():
    sem = Semaphore()
    sem.post(2)
    sem.wait()
    sem.wait()
    order = []

    def waiter():
        sem.wait()
        order.append(current_thread_name())

    t = Thread(waiter, "waiter")
    order.append("post")
    sem.post()
    t.join()
    assert t.name == "waiter"
    assert order == ["post", "waiter"]


def test_current_thread_outside_is_none():
    assert current_thread() is None
    result = []
    plain = threading.Thread(target=lambda: result.append((current_thread(), current_thread_name())))
    plain.start()
    plain.join()
    assert result == [(None, "UNKNOWN")]


def test_set_current_thread_name():
    previous = current_thread_name()
    try:
        set_current_thread_name("main")
        assert current_thread_name() == "main"
    finally:
        set_current_thread_name(previous)


def test_thread_identity():
    seen = {}

    def thread_func():
        me = current_thread()
        seen["thread"] = me
        seen["name"] = current_thread_name()
        seen["native"] = threading.get_native_id()

    t = Thread(thread_func, "test_thrd")
    t.join()
    assert seen["thread"] is t
    assert seen["name"] == "test_thrd"
    assert t.id == seen["native"]
    assert t.name == "test_thrd"
    assert t.to_string() == f"tid: {t.id}\nname: test_thrd"


def test_thread_join_twice():
    hits = []
    t = Thread(lambda: hits.append(1))
    t.join()
    t.join()
    assert hits == [1]


def test_thread_pool_runs_tasks():
    with ThreadPool() as pool:
        futures = [pool.add_task(lambda x: x * x, i) for i in range(10)]
        results = [f.result(timeout=5) for f in futures]
    assert results == [i * i for i in range(10)]


def test_thread_pool_stop_drains_queue_in_order():
    pool = ThreadPool(1)
    done = []
    for i in range(5):
        pool.add_task(done.append, i)
    pool.stop()
    assert done == [0, 1, 2, 3, 4]
    assert not pool.running


def test_thread_pool_rejects_after_stop():
    pool = ThreadPool(2)
    pool.stop()
    with pytest.raises(RuntimeError):
        pool.add_task(print)


def test_thread_pool_task_exception():
    with ThreadPool(2) as pool:
        future = pool.add_task(int, "not a number")
        with pytest.raises(ValueError):
            future.result(timeout=5)


def test_thread_pool_invalid_size():
    with pytest.raises(ValueError):
        ThreadPool(0)