# src/worktimer/timing/state_machine.py

"""
Time-entry lifecycle.

    start ──> RUNNING ──pause──> PAUSED ──resume──> RUNNING
                 │                 │  └──remove──> (deleted)
                 └──stop──> STOPPED <──stop──┘

STOPPED is terminal. `remove` is the "discard abandoned timer" exit and is
only legal from PAUSED.

The apply_* functions are pure and are used both by the in-memory backend
(authoritative) and by the optimistic pipeline (local guess).
"""

from __future__ import annotations

from dataclasses import replace
from enum import StrEnum

from .elapsed import elapsed
from .models import TimeEntry


class EntryState(StrEnum):
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class Transition(StrEnum):
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"
    REMOVE = "remove"


_ALLOWED: dict[Transition, frozenset[EntryState]] = {
    Transition.PAUSE: frozenset({EntryState.RUNNING}),
    Transition.RESUME: frozenset({EntryState.PAUSED}),
    Transition.STOP: frozenset({EntryState.RUNNING, EntryState.PAUSED}),
    Transition.REMOVE: frozenset({EntryState.PAUSED}),
}

_REJECT_MESSAGES: dict[tuple[Transition, EntryState], str] = {
    (Transition.PAUSE, EntryState.PAUSED): "Time entry is already paused",
    (Transition.PAUSE, EntryState.STOPPED): "Cannot pause a stopped entry",
    (Transition.RESUME, EntryState.RUNNING): "Time entry is already running",
    (Transition.RESUME, EntryState.STOPPED): "Cannot resume a stopped entry",
    (Transition.STOP, EntryState.STOPPED): "Time entry is already stopped",
    (Transition.REMOVE, EntryState.RUNNING): "Only paused entries can be removed; pause or stop it first",
    (Transition.REMOVE, EntryState.STOPPED): "Cannot remove a stopped entry",
}


class TransitionRejected(Exception):
    def __init__(self, entry_id: str, state: EntryState, transition: Transition) -> None:
        self.entry_id = entry_id
        self.state = state
        self.transition = transition
        self.message = _REJECT_MESSAGES.get(
            (transition, state), f"Cannot {transition.value} a {state.value} entry"
        )
        super().__init__(self.message)


def state_of(entry: TimeEntry) -> EntryState:
    if entry.end_time is not None:
        return EntryState.STOPPED
    if entry.is_paused:
        return EntryState.PAUSED
    return EntryState.RUNNING


def can_transition(state: EntryState, transition: Transition) -> bool:
    return state in _ALLOWED[transition]


def validate_transition(entry: TimeEntry, transition: Transition) -> EntryState:
    """Return the current state, or raise TransitionRejected."""
    state = state_of(entry)
    if not can_transition(state, transition):
        raise TransitionRejected(entry.id, state, transition)
    return state


def begin_entry(entry_id: str, task_id: str, now: float) -> TimeEntry:
    return TimeEntry(
        id=entry_id,
        task_id=task_id,
        start_time=now,
        is_paused=False,
        last_resumed_at=now,
        accumulated_duration=0.0,
    )


def apply_pause(entry: TimeEntry, now: float) -> TimeEntry:
    validate_transition(entry, Transition.PAUSE)
    # Bank the running segment and clear the resume mark in the same step.
    return replace(
        entry,
        is_paused=True,
        accumulated_duration=elapsed(entry, now),
        last_resumed_at=None,
    )


def apply_resume(entry: TimeEntry, now: float) -> TimeEntry:
    validate_transition(entry, Transition.RESUME)
    return replace(entry, is_paused=False, last_resumed_at=now)


def apply_stop(entry: TimeEntry, now: float) -> TimeEntry:
    validate_transition(entry, Transition.STOP)
    total = elapsed(entry, now)
    return replace(
        entry,
        end_time=now,
        duration=total,
        accumulated_duration=total,
        is_paused=False,
        last_resumed_at=None,
    )
