import threading

import pytest

from lsylar.fiber import (
    Fiber,
    FiberState,
    current_fiber,
    current_fiber_id,
    total_fibers,
    yield_to_hold,
    yield_to_ready,
)


def test_source_sequence():
    out = []

    def fiber():
        out.append("main_in fiber")
        yield_to_ready()

    def txt1():
        out.append("txt1")
        current_fiber().swap_out()

    def txt2():
        out.append("txt2")

    current_fiber()
    f1, f2, f3 = Fiber(fiber), Fiber(txt1), Fiber(txt2)
    f1.swap_in()
    f2.swap_in()
    f3.swap_in()
    assert out == ["main_in fiber", "txt1", "txt2"]
    assert f1.state is FiberState.READY
    assert f2.state is FiberState.HOLD
    assert f3.state is FiberState.TERM


def test_hold_and_resume():
    steps = []

    def body():
        steps.append(1)
        yield_to_hold()
        steps.append(2)

    f = Fiber(body)
    assert f.state is FiberState.INIT
    f.swap_in()
    assert steps == [1]
    assert f.state is FiberState.HOLD
    f.swap_in()
    assert steps == [1, 2]
    assert f.state is FiberState.TERM
    assert f.callback is None


def test_exception_marks_except():
    def boom():
        raise ValueError("bad")

    f = Fiber(boom)
    f.swap_in()
    assert f.state is FiberState.EXCEPT
    assert isinstance(f.exception, ValueError)


def test_ids_inside_and_outside():
    seen = []
    main = current_fiber()
    f = Fiber(lambda: seen.append((current_fiber_id(), current_fiber())))
    f.swap_in()
    assert seen == [(f.id, f)]
    assert main.id == 0
    assert current_fiber_id() == 0
    assert current_fiber() is main


def test_current_fiber_id_without_fiber():
    assert current_fiber_id() == 0
    result = []
    t = threading.Thread(target=lambda: result.append(current_fiber_id()))
    t.start()
    t.join()
    assert result == [0]


def test_swap_in_running_fiber_is_ignored():
    calls = []

    def body():
        current_fiber().swap_in()
        calls.append("after")

    f = Fiber(body)
    f.swap_in()
    assert calls == ["after"]
    assert f.state is FiberState.TERM


def test_call_and_back():
    steps = []

    def body():
        steps.append("a")
        current_fiber().back()
        steps.append("b")

    f = Fiber(body)
    f.call()
    assert steps == ["a"]
    assert f.state is FiberState.EXEC
    f.call()
    assert steps == ["a", "b"]
    assert f.state is FiberState.TERM


def test_reset_discards_suspended_run():
    log = []

    def first():
        log.append("first")
        yield_to_hold()
        log.append("first-after")

    f = Fiber(first)
    f.swap_in()
    f.reset(lambda: log.append("second"))
    assert f.state is FiberState.INIT
    f.swap_in()
    assert f.state is FiberState.TERM
    assert log == ["first", "second"]


def test_finished_fiber_cannot_run_again():
    f = Fiber(lambda: None)
    f.swap_in()
    with pytest.raises(RuntimeError):
        f.swap_in()


def test_yield_from_main_fiber_raises():
    with pytest.raises(RuntimeError):
        yield_to_hold()
    current_fiber().state = FiberState.EXEC


def test_total_fibers_counts_new_fiber():
    before = total_fibers()
    f = Fiber(lambda: None)
    assert total_fibers() == before + 1
    assert f.stack_size == 1024 * 1024
    assert str(FiberState.READY) == "READY"