# src/worktimer/timing/entry_store.py

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable

from .models import TimeEntry

logger = logging.getLogger(__name__)

StoreListener = Callable[[], None]


class EntryStore:
    """
    Observable container for the client's view of time entries.

    Every mutation is applied in full before listeners run, so a listener never
    sees a half-updated entry. Entries are kept newest-first: new ids go to the
    front, updates keep their position.
    """

    def __init__(self, entries: Iterable[TimeEntry] = ()) -> None:
        self._entries: dict[str, TimeEntry] = {e.id: e for e in entries}
        self._listeners: list[StoreListener] = []
        self.last_error: str | None = None
        self.loading = False

    # ---- observation ----

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ---- queries ----

    def get(self, entry_id: str) -> TimeEntry | None:
        return self._entries.get(entry_id)

    def __contains__(self, entry_id: object) -> bool:
        return entry_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def entries(self) -> list[TimeEntry]:
        return list(self._entries.values())

    def active_entries(self) -> list[TimeEntry]:
        return [e for e in self._entries.values() if e.end_time is None]

    def completed_entries(self) -> list[TimeEntry]:
        return [e for e in self._entries.values() if e.end_time is not None]

    def entries_for_task(self, task_id: str) -> list[TimeEntry]:
        return [e for e in self._entries.values() if e.task_id == task_id]

    # ---- mutations ----

    def upsert(self, entry: TimeEntry) -> None:
        if entry.id in self._entries:
            self._entries[entry.id] = entry
        else:
            self._entries = {entry.id: entry, **self._entries}
        self._emit()

    def discard(self, entry_id: str) -> bool:
        if self._entries.pop(entry_id, None) is None:
            return False
        self._emit()
        return True

    def replace_all(self, entries: Iterable[TimeEntry]) -> None:
        self._entries = {e.id: e for e in entries}
        self._warn_duplicate_active()
        self._emit()

    def merge_active(self, active: Iterable[TimeEntry]) -> None:
        """Authoritative active set from the backend; completed entries are kept."""
        merged = {e.id: e for e in active}
        for e in self._entries.values():
            if e.end_time is not None and e.id not in merged:
                merged[e.id] = e
        self._entries = merged
        self._warn_duplicate_active()
        self._emit()

    def set_error(self, message: str | None) -> None:
        if message == self.last_error:
            return
        self.last_error = message
        self._emit()

    def set_loading(self, loading: bool) -> None:
        if loading == self.loading:
            return
        self.loading = loading
        self._emit()

    def _warn_duplicate_active(self) -> None:
        counts = Counter(e.task_id for e in self._entries.values() if e.end_time is None)
        for task_id, n in counts.items():
            if n > 1:
                logger.warning("Task %s has %d active time entries", task_id, n)
