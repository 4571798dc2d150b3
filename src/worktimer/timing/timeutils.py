# src/worktimer/timing/timeutils.py

from __future__ import annotations

from collections.abc import Iterable

from .models import TimeEntry


def format_time(seconds: float) -> str:
    """Seconds -> HH:MM:SS (hours are not wrapped at 24)."""
    total = max(0, int(seconds))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h:02d}:{m:02d}:{s:02d}"


def format_time_compact(seconds: float) -> str:
    """Short form for tight spaces: "45m", "2h", "2h 30m"."""
    seconds = max(0.0, float(seconds))
    if seconds < 3600:
        return f"{round(seconds / 60)}m"
    hours = int(seconds // 3600)
    minutes = round((seconds % 3600) / 60)
    if minutes == 60:
        hours, minutes = hours + 1, 0
    return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"


def total_time_spent(
    task_id: str,
    entries: Iterable[TimeEntry],
    active_entry: TimeEntry | None = None,
    current_elapsed: float = 0.0,
) -> float:
    """
    Seconds spent on a task: finalized durations plus the live elapsed time of
    its active entry, if one is given.
    """
    total = sum(
        float(e.duration or 0.0)
        for e in entries
        if e.task_id == task_id and e.end_time is not None
    )
    if active_entry is not None and active_entry.task_id == task_id and current_elapsed > 0:
        total += current_elapsed
    return total


def time_progress(elapsed_seconds: float, estimated_hours: float | None) -> float:
    """Percent of the estimate used, capped at 100."""
    if not estimated_hours or elapsed_seconds <= 0:
        return 0.0
    return min(elapsed_seconds / (estimated_hours * 3600) * 100.0, 100.0)


def is_overtime(elapsed_seconds: float, estimated_hours: float | None) -> bool:
    if not estimated_hours:
        return False
    return elapsed_seconds > estimated_hours * 3600


def format_overtime(elapsed_seconds: float, estimated_hours: float | None) -> str:
    if not is_overtime(elapsed_seconds, estimated_hours):
        return ""
    assert estimated_hours is not None
    over_hours = (elapsed_seconds - estimated_hours * 3600) / 3600
    return f"{over_hours:.1f}h over"
