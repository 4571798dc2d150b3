# src/worktimer/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..timing.actions import TimeTrackingService
from ..timing.coordinator import GlobalTimerCoordinator
from ..timing.entry_store import EntryStore
from .ports import Notifier, TimeEntryBackend


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules later.
    settings: Any

    backend: TimeEntryBackend
    store: EntryStore
    coordinator: GlobalTimerCoordinator
    service: TimeTrackingService
    notifier: Notifier | None = None

    # Latest {entry_id: seconds} broadcast to the console observer; /status and /list show it.
    elapsed: dict[str, int] = field(default_factory=dict)
