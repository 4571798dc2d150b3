# src/worktimer/timing/elapsed.py

"""
Elapsed-time accounting.

Pure functions only: `now` is always passed in, nothing here reads a clock.
"""

from __future__ import annotations

import logging
import math

from .models import TimeEntry

logger = logging.getLogger(__name__)


def elapsed(entry: TimeEntry, now: float) -> float:
    """
    Active seconds for `entry` as of `now`.

    - finalized: the stored duration
    - paused: accumulated_duration
    - running: accumulated_duration + max(0, now - last_resumed_at)
    """
    if entry.end_time is not None:
        if entry.duration is not None:
            return float(entry.duration)
        return float(entry.accumulated_duration)

    if entry.is_paused:
        return float(entry.accumulated_duration)

    if entry.last_resumed_at is None:
        # Running without a resume mark: count nothing beyond what is banked.
        logger.debug("Running entry %s has no last_resumed_at", entry.id)
        return float(entry.accumulated_duration)

    # Negative delta means clock skew between us and the backend.
    return float(entry.accumulated_duration) + max(0.0, now - entry.last_resumed_at)


def elapsed_seconds(entry: TimeEntry, now: float) -> int:
    """Whole seconds, floored, as displayed."""
    return int(math.floor(elapsed(entry, now)))
