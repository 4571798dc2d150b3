# src/worktimer/timing/actions.py

from __future__ import annotations

"""
Time-tracking actions.

pause/resume are optimistic: the local entry is updated before the backend
answers, then either replaced by the authoritative payload or rolled back.
start/stop/remove/update change which entries exist (or finalize them), so they
wait for the backend before touching local state.

Nothing here raises on backend failures. Every action returns an ApiResult,
records store.last_error and reports through the Notifier.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from ..core.errors import ApiResult, ErrorKind
from ..core.ports import Notifier, TimeEntryBackend
from .entry_store import EntryStore
from .models import EDITABLE_FIELDS, TimeEntry
from .state_machine import (
    EntryState,
    Transition,
    TransitionRejected,
    apply_pause,
    apply_resume,
    state_of,
    validate_transition,
)

logger = logging.getLogger(__name__)

BUSY_MESSAGE = "Another action is already in progress for this time entry"


class OptimisticAction:
    """
    Command object for a local-first update of one entry.

    apply()    -> snapshot the current entry, write the mutated one
    commit(e)  -> replace with the authoritative entry from the backend
    rollback() -> restore the snapshot (only if the entry still exists)
    """

    def __init__(
        self,
        store: EntryStore,
        entry_id: str,
        mutate: Callable[[TimeEntry], TimeEntry],
    ) -> None:
        self._store = store
        self.entry_id = entry_id
        self._mutate = mutate
        self._before: TimeEntry | None = None
        self._applied = False

    @property
    def applied(self) -> bool:
        return self._applied

    def apply(self) -> TimeEntry | None:
        current = self._store.get(self.entry_id)
        if current is None:
            return None
        optimistic = self._mutate(current)
        self._before = current
        self._store.upsert(optimistic)
        self._applied = True
        return optimistic

    def commit(self, server_entry: TimeEntry) -> None:
        self._store.upsert(server_entry)
        self._applied = False

    def rollback(self) -> None:
        if not self._applied or self._before is None:
            return
        self._applied = False
        if self.entry_id in self._store:
            self._store.upsert(self._before)


def _clean_id(raw: Any) -> str:
    if raw is None:
        return ""
    return str(raw).strip()


class TimeTrackingService:
    def __init__(
        self,
        backend: TimeEntryBackend,
        store: EntryStore,
        *,
        notifier: Notifier | None = None,
        clock: Callable[[], float] = time.time,
        reconcile: bool = True,
    ) -> None:
        self._backend = backend
        self._store = store
        self._notifier = notifier
        self._clock = clock
        self._reconcile = reconcile
        self._inflight: set[str] = set()
        self._closed = False

    @property
    def store(self) -> EntryStore:
        return self._store

    def close(self) -> None:
        """Stop touching shared state; in-flight backend calls are left to finish."""
        self._closed = True

    def is_busy(self, entry_id: str) -> bool:
        return entry_id in self._inflight

    # ---- read helpers ----

    def active_entries(self) -> list[TimeEntry]:
        return self._store.active_entries()

    def completed_entries(self) -> list[TimeEntry]:
        return self._store.completed_entries()

    def entries_for_task(self, task_id: str) -> list[TimeEntry]:
        return self._store.entries_for_task(task_id)

    def has_active_timer(self, task_id: str) -> bool:
        return any(e.task_id == task_id for e in self._store.active_entries())

    def get_active_timer(self, task_id: str) -> TimeEntry | None:
        for e in self._store.active_entries():
            if e.task_id == task_id:
                return e
        return None

    @property
    def active_timers_count(self) -> int:
        return len(self._store.active_entries())

    @property
    def is_any_timer_running(self) -> bool:
        return any(e.is_running for e in self._store.active_entries())

    @property
    def total_tracked_hours(self) -> float:
        return sum(float(e.duration or 0.0) for e in self._store.entries()) / 3600

    # ---- optimistic actions ----

    async def pause_tracking(self, entry_id: str) -> ApiResult:
        return await self._run_optimistic(
            entry_id,
            Transition.PAUSE,
            lambda e: apply_pause(e, self._clock()),
            self._backend.pause,
            "pause time tracking",
        )

    async def resume_tracking(self, entry_id: str) -> ApiResult:
        return await self._run_optimistic(
            entry_id,
            Transition.RESUME,
            lambda e: apply_resume(e, self._clock()),
            self._backend.resume,
            "resume time tracking",
        )

    async def toggle_tracking(self, entry_id: str) -> ApiResult:
        entry = self._store.get(_clean_id(entry_id))
        if entry is None:
            return self._report(ApiResult.fail("Timer not found", ErrorKind.REJECTED_TRANSITION), "toggle timer")
        if state_of(entry) == EntryState.PAUSED:
            return await self.resume_tracking(entry.id)
        return await self.pause_tracking(entry.id)

    async def _run_optimistic(
        self,
        raw_id: str,
        transition: Transition,
        mutate: Callable[[TimeEntry], TimeEntry],
        call: Callable[[str], Awaitable[ApiResult]],
        label: str,
    ) -> ApiResult:
        entry_id = _clean_id(raw_id)
        if not entry_id:
            return self._report(
                ApiResult.fail("Time entry ID is required", ErrorKind.VALIDATION_FAILURE), label
            )
        if not self._acquire(entry_id):
            return ApiResult.fail(BUSY_MESSAGE, ErrorKind.REJECTED_TRANSITION)

        try:
            local = self._store.get(entry_id)
            if local is not None:
                try:
                    validate_transition(local, transition)
                except TransitionRejected as e:
                    self._report(ApiResult.fail(e.message, ErrorKind.REJECTED_TRANSITION), label)
                    await self._reconcile_active()
                    return ApiResult.fail(e.message, ErrorKind.REJECTED_TRANSITION)

            action = OptimisticAction(self._store, entry_id, mutate)
            if not self._closed:
                action.apply()

            logger.info("%s entry=%s (optimistic=%s)", transition.value, entry_id, action.applied)
            try:
                result = await self._call(call, entry_id)
            except asyncio.CancelledError:
                # The call never settled for us: the local guess must not outlive it.
                if not self._closed:
                    action.rollback()
                logger.info("%s entry=%s cancelled; optimistic update rolled back", transition.value, entry_id)
                raise

            if self._closed:
                return result

            if result.success:
                if isinstance(result.data, TimeEntry):
                    action.commit(result.data)
                self._store.set_error(None)
            else:
                action.rollback()
                self._report(result, label)

            await self._reconcile_active()
            return result
        finally:
            self._release(entry_id)

    # ---- confirmed actions ----

    async def start_tracking(self, task_id: str) -> ApiResult:
        task_id = _clean_id(task_id)
        label = "start time tracking"
        if not task_id:
            return self._report(ApiResult.fail("Task ID is required", ErrorKind.VALIDATION_FAILURE), label)

        key = f"task:{task_id}"
        if not self._acquire(key):
            return ApiResult.fail(BUSY_MESSAGE, ErrorKind.REJECTED_TRANSITION)
        try:
            logger.info("start task=%s", task_id)
            result = await self._with_loading(self._call(self._backend.start, task_id))
            if self._closed:
                return result
            if not result.success:
                return self._report(result, label)
            if isinstance(result.data, TimeEntry):
                self._store.upsert(result.data)
            self._store.set_error(None)
            return result
        finally:
            self._release(key)

    async def stop_tracking(self, entry_id: str) -> ApiResult:
        return await self._run_confirmed(
            entry_id, Transition.STOP, self._backend.stop, "stop time tracking"
        )

    async def remove_entry(self, entry_id: str) -> ApiResult:
        """Hard-delete a paused entry ("discard abandoned timer")."""
        return await self._run_confirmed(
            entry_id, Transition.REMOVE, self._backend.remove, "delete time entry"
        )

    async def _run_confirmed(
        self,
        raw_id: str,
        transition: Transition,
        call: Callable[[str], Awaitable[ApiResult]],
        label: str,
    ) -> ApiResult:
        entry_id = _clean_id(raw_id)
        if not entry_id:
            return self._report(
                ApiResult.fail("Time entry ID is required", ErrorKind.VALIDATION_FAILURE), label
            )
        if not self._acquire(entry_id):
            return ApiResult.fail(BUSY_MESSAGE, ErrorKind.REJECTED_TRANSITION)

        try:
            local = self._store.get(entry_id)
            if local is not None:
                try:
                    validate_transition(local, transition)
                except TransitionRejected as e:
                    return self._report(ApiResult.fail(e.message, ErrorKind.REJECTED_TRANSITION), label)

            logger.info("%s entry=%s", transition.value, entry_id)
            result = await self._with_loading(self._call(call, entry_id))
            if self._closed:
                return result
            if not result.success:
                return self._report(result, label)

            if transition == Transition.REMOVE:
                self._store.discard(entry_id)
                self._notify("success", "Time entry deleted successfully")
            elif isinstance(result.data, TimeEntry):
                self._store.upsert(result.data)
            self._store.set_error(None)
            return result
        finally:
            self._release(entry_id)

    async def update_entry(self, entry_id: str, changes: dict[str, Any]) -> ApiResult:
        """Edit start/end/duration/notes of an entry."""
        label = "update time entry"
        entry_id = _clean_id(entry_id)
        if not entry_id:
            return self._report(
                ApiResult.fail("Time entry ID is required", ErrorKind.VALIDATION_FAILURE), label
            )
        problem = _check_changes(changes)
        if problem:
            return self._report(ApiResult.fail(problem, ErrorKind.VALIDATION_FAILURE), label)

        if not self._acquire(entry_id):
            return ApiResult.fail(BUSY_MESSAGE, ErrorKind.REJECTED_TRANSITION)
        try:
            result = await self._with_loading(
                self._call(lambda i: self._backend.update(i, dict(changes)), entry_id)
            )
            if self._closed:
                return result
            if not result.success:
                return self._report(result, label)
            if isinstance(result.data, TimeEntry):
                self._store.upsert(result.data)
            self._store.set_error(None)
            self._notify("success", "Time entry updated successfully")
            return result
        finally:
            self._release(entry_id)

    async def create_manual_entry(
        self,
        task_id: str,
        *,
        start_time: float,
        end_time: float,
        duration: float | None = None,
        notes: str | None = None,
    ) -> ApiResult:
        """
        Record time after the fact: start an entry for the task, then overwrite
        its times with the given span.
        """
        label = "add manual time entry"
        task_id = _clean_id(task_id)
        if not task_id:
            return self._report(ApiResult.fail("Task ID is required", ErrorKind.VALIDATION_FAILURE), label)
        if end_time <= start_time:
            return self._report(
                ApiResult.fail("End time must be after start time", ErrorKind.VALIDATION_FAILURE), label
            )
        if duration is None:
            duration = end_time - start_time
        if duration < 0:
            return self._report(
                ApiResult.fail("Duration cannot be negative", ErrorKind.VALIDATION_FAILURE), label
            )

        key = f"task:{task_id}"
        if not self._acquire(key):
            return ApiResult.fail(BUSY_MESSAGE, ErrorKind.REJECTED_TRANSITION)
        try:
            started = await self._call(self._backend.start, task_id)
            if self._closed:
                return started
            if not started.success:
                return self._report(started, label)
            if not isinstance(started.data, TimeEntry):
                return self._report(
                    ApiResult.fail("Backend returned no time entry", ErrorKind.REJECTED_TRANSITION), label
                )

            entry_id = started.data.id
            changes = {
                "start_time": start_time,
                "end_time": end_time,
                "duration": duration,
                "notes": notes,
            }
            updated = await self._call(lambda i: self._backend.update(i, changes), entry_id)
            if self._closed:
                return updated
            if not updated.success:
                # The started entry is still running on the backend; make it visible.
                logger.warning("Manual entry %s was started but could not be updated", entry_id)
                self._report(updated, label)
                await self._reconcile_active()
                return updated

            if isinstance(updated.data, TimeEntry):
                self._store.upsert(updated.data)
            self._store.set_error(None)
            self._notify("success", "Manual time entry added successfully")
            return updated
        finally:
            self._release(key)

    # ---- fetching ----

    async def fetch_active(self) -> ApiResult:
        """Replace the local active set with the backend's; completed entries are kept."""
        result = await self._with_loading(self._call(lambda _: self._backend.list(active_only=True), ""))
        if self._closed:
            return result
        if result.success:
            self._store.merge_active(result.data or [])
        else:
            self._store.set_error(result.message or "Failed to fetch active timers")
        return result

    async def fetch_all(self) -> ApiResult:
        result = await self._with_loading(self._call(lambda _: self._backend.list(active_only=False), ""))
        if self._closed:
            return result
        if result.success:
            self._store.replace_all(result.data or [])
        else:
            self._store.set_error(result.message or "Failed to fetch time entries")
        return result

    async def _reconcile_active(self) -> None:
        """Re-read the authoritative active set; fixes drift from other clients."""
        if not self._reconcile or self._closed:
            return
        result = await self._call(lambda _: self._backend.list(active_only=True), "")
        if self._closed:
            return
        if result.success:
            self._store.merge_active(result.data or [])
        else:
            logger.warning("Reconciliation fetch failed: %s", result.message)

    # ---- helpers ----

    def _acquire(self, key: str) -> bool:
        if key in self._inflight:
            logger.debug("Action already in flight for %s", key)
            return False
        self._inflight.add(key)
        return True

    def _release(self, key: str) -> None:
        self._inflight.discard(key)

    async def _call(self, call: Callable[[str], Awaitable[ApiResult]], arg: str) -> ApiResult:
        try:
            return await call(arg)
        except Exception as e:
            logger.exception("Backend call failed unexpectedly")
            return ApiResult.fail(str(e) or type(e).__name__, ErrorKind.NETWORK_FAILURE)

    async def _with_loading(self, aw: Awaitable[ApiResult]) -> ApiResult:
        if not self._closed:
            self._store.set_loading(True)
        try:
            return await aw
        finally:
            if not self._closed:
                self._store.set_loading(False)

    def _report(self, result: ApiResult, label: str) -> ApiResult:
        message = result.message or f"Failed to {label}"
        logger.warning("Failed to %s: %s (%s)", label, message, result.kind)
        if not self._closed:
            self._store.set_error(message)
            self._notify("error", f"Failed to {label}: {message}")
        return result

    def _notify(self, level: str, message: str) -> None:
        if self._notifier is None:
            return
        self._notifier.notify(level, message)


def _check_changes(changes: dict[str, Any]) -> str | None:
    if not changes:
        return "No changes given"
    unknown = sorted(set(changes) - set(EDITABLE_FIELDS))
    if unknown:
        return f"Fields are not editable: {', '.join(unknown)}"
    start, end = changes.get("start_time"), changes.get("end_time")
    if start is not None and end is not None and end < start:
        return "End time must be after start time"
    duration = changes.get("duration")
    if duration is not None and duration < 0:
        return "Duration cannot be negative"
    return None
