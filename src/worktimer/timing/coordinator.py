# src/worktimer/timing/coordinator.py

from __future__ import annotations

"""
Global timer coordinator.

One shared periodic tick for any number of observers. Each observer supplies
an accessor (the entries it cares about) and a callback. The coordinator:

- broadcasts immediately on register() and entries_changed(), so a new
  observer never waits a full interval for current values,
- runs the tick only while the union of all observers' entries holds at least
  one running entry,
- recomputes elapsed seconds for the whole union (paused entries included) and
  sends the same {entry_id: seconds} map to every observer,
- defers stop checks to the next loop iteration, so an unmount followed by a
  sibling mount does not stop and restart the tick.

Callback exceptions are not caught here; observers own their resilience.
"""

import asyncio
import logging
import time
from collections.abc import Callable, Hashable, Iterable
from dataclasses import dataclass

from .elapsed import elapsed_seconds
from .models import TimeEntry

logger = logging.getLogger(__name__)

EntryAccessor = Callable[[], Iterable[TimeEntry | None]]
ElapsedCallback = Callable[[dict[str, int]], None]
Unregister = Callable[[], None]


@dataclass(slots=True, frozen=True)
class _Observer:
    observer_id: Hashable
    get_entries: EntryAccessor
    on_update: ElapsedCallback


class GlobalTimerCoordinator:
    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        interval_seconds: float = 1.0,
    ) -> None:
        self._clock = clock
        self._interval = max(0.001, float(interval_seconds))
        self._observers: dict[Hashable, _Observer] = {}
        self._elapsed: dict[str, int] = {}
        self._tick_task: asyncio.Task[None] | None = None
        self._stop_check_pending = False
        self._disposed = False

    # ---- lifecycle ----

    async def __aenter__(self) -> GlobalTimerCoordinator:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.dispose()

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._cancel_tick()
        self._observers.clear()
        self._elapsed = {}
        logger.debug("Coordinator disposed")

    # ---- public API ----

    @property
    def is_ticking(self) -> bool:
        return self._tick_task is not None

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def elapsed_times(self) -> dict[str, int]:
        return dict(self._elapsed)

    def get_elapsed(self, entry_id: str) -> int:
        return self._elapsed.get(entry_id, 0)

    def is_tracking(self, entry_id: str) -> bool:
        return entry_id in self._elapsed

    def register(
        self,
        observer_id: Hashable,
        get_entries: EntryAccessor,
        on_update: ElapsedCallback,
    ) -> Unregister:
        """
        Add an observer and broadcast current values right away.

        Registering an existing id replaces the previous registration.
        Returns a function that removes this registration (idempotent).
        """
        if self._disposed:
            logger.warning("register(%r) on a disposed coordinator ignored", observer_id)
            return lambda: None

        observer = _Observer(observer_id, get_entries, on_update)
        self._observers[observer_id] = observer
        logger.debug("Observer registered id=%r total=%d", observer_id, len(self._observers))

        def unregister() -> None:
            if self._observers.get(observer_id) is not observer:
                return
            del self._observers[observer_id]
            logger.debug("Observer unregistered id=%r total=%d", observer_id, len(self._observers))
            self._schedule_stop_check()

        self._refresh()
        return unregister

    def entries_changed(self) -> None:
        """Some observer's entry set changed: recompute and broadcast now."""
        if self._disposed:
            return
        self._refresh()

    # ---- internals ----

    def _collect(self) -> dict[str, TimeEntry]:
        union: dict[str, TimeEntry] = {}
        for observer in list(self._observers.values()):
            for entry in observer.get_entries() or ():
                if entry is None or not entry.id:
                    continue
                union.setdefault(entry.id, entry)
        return union

    @staticmethod
    def _has_running(entries: dict[str, TimeEntry]) -> bool:
        return any(e.is_running for e in entries.values())

    def _refresh(self) -> None:
        entries = self._collect()
        if self._has_running(entries):
            self._ensure_ticking()
        else:
            self._schedule_stop_check()
        self._broadcast(entries)

    def _broadcast(self, entries: dict[str, TimeEntry]) -> None:
        now = self._clock()
        times = {entry_id: elapsed_seconds(e, now) for entry_id, e in entries.items()}
        self._elapsed = times

        # Snapshot: observers added or removed by a callback do not change this round.
        for observer in list(self._observers.values()):
            observer.on_update(dict(times))

    def _ensure_ticking(self) -> None:
        if self._tick_task is not None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; shared tick not started")
            return
        logger.debug("Starting shared tick (observers=%d)", len(self._observers))
        self._tick_task = loop.create_task(self._run_ticks(), name="worktimer-shared-tick")

    async def _run_ticks(self) -> None:
        me = asyncio.current_task()
        try:
            while True:
                await asyncio.sleep(self._interval)
                if self._disposed or not self._observers:
                    break
                self._broadcast(self._collect())
                # Callbacks may have changed the entry sets during the broadcast.
                if not self._has_running(self._collect()):
                    break
        finally:
            if self._tick_task is me:
                self._tick_task = None
                logger.debug("Shared tick stopped")

    def _schedule_stop_check(self) -> None:
        if self._stop_check_pending:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._stop_check()
            return
        self._stop_check_pending = True
        loop.call_soon(self._stop_check)

    def _stop_check(self) -> None:
        self._stop_check_pending = False
        if self._disposed:
            return
        if not self._observers:
            self._cancel_tick()
            self._elapsed = {}
            return
        if self._tick_task is not None and not self._has_running(self._collect()):
            self._cancel_tick()

    def _cancel_tick(self) -> None:
        task = self._tick_task
        if task is None:
            return
        self._tick_task = None
        task.cancel()
        logger.debug("Shared tick stopped")
