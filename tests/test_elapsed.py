# tests/test_elapsed.py

from __future__ import annotations

from worktimer.timing.elapsed import elapsed, elapsed_seconds
from worktimer.timing.models import TimeEntry
from worktimer.timing.state_machine import apply_pause, apply_resume, apply_stop, begin_entry


def _running(acc: float = 0.0, resumed: float | None = 100.0) -> TimeEntry:
    return TimeEntry(
        id="a",
        task_id="t1",
        start_time=0.0,
        last_resumed_at=resumed,
        accumulated_duration=acc,
    )


def test_running_adds_time_since_last_resume() -> None:
    assert elapsed(_running(acc=5.0, resumed=100.0), 130.0) == 35.0


def test_paused_returns_banked_time_only() -> None:
    entry = TimeEntry(id="a", task_id="t1", start_time=0.0, is_paused=True, accumulated_duration=42.0)
    assert elapsed(entry, 10.0) == 42.0
    assert elapsed(entry, 10_000.0) == 42.0


def test_finalized_returns_stored_duration() -> None:
    entry = TimeEntry(
        id="a",
        task_id="t1",
        start_time=0.0,
        end_time=50.0,
        accumulated_duration=20.0,
        duration=20.0,
    )
    assert elapsed(entry, 60.0) == 20.0
    assert elapsed(entry, 1e9) == 20.0


def test_negative_delta_is_clamped() -> None:
    # now is before last_resumed_at (clock skew)
    assert elapsed(_running(acc=7.0, resumed=200.0), 150.0) == 7.0


def test_running_without_resume_mark_does_not_raise() -> None:
    assert elapsed(_running(acc=3.0, resumed=None), 500.0) == 3.0


def test_non_decreasing_while_running() -> None:
    entry = _running(acc=2.0, resumed=10.0)
    values = [elapsed(entry, float(t)) for t in range(0, 100, 3)]
    assert values == sorted(values)


def test_pure_for_same_inputs() -> None:
    entry = _running(acc=1.5, resumed=10.0)
    assert elapsed(entry, 77.7) == elapsed(entry, 77.7)


def test_elapsed_seconds_floors() -> None:
    assert elapsed_seconds(_running(acc=0.0, resumed=0.0), 9.99) == 9


def test_pause_resume_stop_scenario() -> None:
    a = begin_entry("A", "task-x", 0.0)

    a = apply_pause(a, 10.0)
    assert elapsed(a, 10.0) == 10.0
    assert elapsed(a, 30.0) == 10.0

    a = apply_resume(a, 30.0)
    assert a.last_resumed_at == 30.0
    assert elapsed(a, 40.0) == 20.0

    stopped = apply_stop(apply_pause(a, 40.0), 40.0)
    assert stopped.duration == 20.0
    for t in (40.0, 41.0, 1000.0):
        assert elapsed(stopped, t) == 20.0


def test_stop_while_running_freezes_duration() -> None:
    a = begin_entry("A", "task-x", 0.0)
    a = apply_resume(apply_pause(a, 10.0), 30.0)
    stopped = apply_stop(a, 40.0)
    assert stopped.duration == 20.0
    assert elapsed(stopped, 99.0) == 20.0


def test_resume_then_pause_at_same_instant_keeps_elapsed() -> None:
    paused = apply_pause(begin_entry("A", "t", 0.0), 12.0)
    before = elapsed(paused, 50.0)
    again = apply_pause(apply_resume(paused, 50.0), 50.0)
    assert elapsed(again, 50.0) == before
    assert again.accumulated_duration == paused.accumulated_duration
