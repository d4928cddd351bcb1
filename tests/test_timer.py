import pytest

from lsylar.timer import Timer, TimerManager, handle_timer
from lsylar.util import cur_time_ms


def test_add_handle_and_remove_like_source():
    tm = TimerManager()
    fired = []
    before = tm.cur_time()
    tm.add(30, lambda: fired.append(cur_time_ms()))
    after = tm.cur_time()
    earliest = tm.minimum()
    assert before + 30 <= earliest.time <= after + 30

    handle_timer(earliest)
    assert len(fired) == 1
    assert fired[0] >= earliest.time

    tm.remove(earliest)
    assert tm.minimum() is None


def test_minimum_is_earliest_timer():
    tm = TimerManager(clock=lambda: 1000)
    late = tm.add(500, lambda: None)
    early = tm.add(10, lambda: None)
    middle = tm.add(100, lambda: None)
    assert tm.minimum() is early
    assert [t for t in tm] == [early, middle, late]
    tm.remove(early)
    assert tm.minimum() is middle
    assert len(tm) == 2


def test_add_uses_clock():
    tm = TimerManager(clock=lambda: 1000)
    timer = tm.add(50, lambda: None)
    assert timer.time == 1050


def test_removing_twice_raises():
    tm = TimerManager()
    timer = tm.add(0, lambda: None)
    tm.remove(timer)
    with pytest.raises(ValueError):
        tm.remove(timer)


def test_handle_timer_returns_callback_result():
    timer = Timer(cur_time_ms(), lambda: "done")
    assert handle_timer(timer) == "done"


def test_handle_timer_without_callback():
    assert handle_timer(Timer(0, None)) is None