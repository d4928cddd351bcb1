import pytest

from lsylar.util import (
    ErrHandler,
    backtrace,
    backtrace_to_string,
    cur_time_ms,
    cur_time_us,
    timed,
    tt_assert,
)


def test_time_units_agree():
    ms = cur_time_ms()
    us = cur_time_us()
    assert us >= ms * 1000
    assert us // 1000 - ms < 1000


def test_backtrace_starts_at_caller():
    frames = backtrace(100, 0)
    assert "test_backtrace_starts_at_caller" in frames[0]


def test_backtrace_skip_drops_innermost():
    full = backtrace(100, 0)
    skipped = backtrace(100, 1)
    assert skipped[0] == full[1]
    assert len(skipped) == len(full) - 1


def test_backtrace_size_limit():
    assert len(backtrace(3, 1)) == 2
    assert backtrace(0, 0) == []


def test_backtrace_to_string_prefix():
    text = backtrace_to_string(5, 0, "    ")
    lines = text.splitlines()
    assert len(lines) == 5
    assert all(line.startswith("    ") for line in lines)
    assert text.endswith("\n")
    assert "test_backtrace_to_string_prefix" in lines[0]


def test_timed_returns_result_and_reports(capsys):
    result = timed(lambda a, b: a + b, 2, 3)
    out = capsys.readouterr().out
    assert result == 5
    assert "is begin......" in out
    assert "is end, using time is" in out


def test_tt_assert(capsys):
    tt_assert(1 == 1, "1 == 1")
    assert capsys.readouterr().out == ""
    with pytest.raises(AssertionError, match="ASSERTION:1 == 2"):
        tt_assert(1 == 2, "1 == 2")
    out = capsys.readouterr().out
    assert "ASSERTION:1 == 2" in out
    assert "backtrace:" in out


def test_err_handler_runs_action_only_when_asked(capsys):
    calls = []
    handler = ErrHandler(object())
    handler.handle_error("first", lambda: calls.append("first"))
    handler.handle_error("second", lambda: calls.append("second"), True)
    assert calls == ["second"]
    assert capsys.readouterr().out == "first\nsecond\n"