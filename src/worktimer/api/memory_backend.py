# src/worktimer/api/memory_backend.py

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from ..core.errors import ApiResult, ErrorKind
from ..timing.models import EDITABLE_FIELDS, TimeEntry
from ..timing.state_machine import (
    Transition,
    TransitionRejected,
    apply_pause,
    apply_resume,
    apply_stop,
    begin_entry,
    validate_transition,
)

logger = logging.getLogger(__name__)


class InMemoryTimeEntryBackend:
    """
    In-process backend with the same rules as the REST service.

    Used when no API URL is configured (offline demo mode) and as a realistic
    collaborator in tests. State lives only in this object.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], float] = time.time,
        enforce_single_active_per_task: bool = False,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ) -> None:
        self._clock = clock
        self._single_active = enforce_single_active_per_task
        self._new_id = id_factory
        self._entries: dict[str, TimeEntry] = {}

    def snapshot(self) -> list[TimeEntry]:
        return list(self._entries.values())

    async def start(self, task_id: str) -> ApiResult:
        task_id = (task_id or "").strip()
        if not task_id:
            return ApiResult.fail("Task ID is required", ErrorKind.VALIDATION_FAILURE, status=400)

        if self._single_active:
            for e in self._entries.values():
                if e.task_id == task_id and e.end_time is None:
                    return ApiResult.fail(
                        f"Task {task_id} already has an active time entry",
                        ErrorKind.REJECTED_TRANSITION,
                        status=409,
                    )

        entry = begin_entry(self._new_id(), task_id, self._clock())
        self._entries[entry.id] = entry
        logger.debug("started entry=%s task=%s", entry.id, task_id)
        return ApiResult.ok(entry, status=201)

    async def pause(self, entry_id: str) -> ApiResult:
        return self._transition(entry_id, apply_pause)

    async def resume(self, entry_id: str) -> ApiResult:
        return self._transition(entry_id, apply_resume)

    async def stop(self, entry_id: str) -> ApiResult:
        return self._transition(entry_id, apply_stop)

    async def remove(self, entry_id: str) -> ApiResult:
        entry = self._entries.get(entry_id)
        if entry is None:
            return ApiResult.fail("Time entry not found", ErrorKind.REJECTED_TRANSITION, status=404)
        try:
            validate_transition(entry, Transition.REMOVE)
        except TransitionRejected as e:
            return ApiResult.fail(e.message, ErrorKind.REJECTED_TRANSITION, status=400)
        del self._entries[entry_id]
        logger.debug("removed entry=%s", entry_id)
        return ApiResult.ok(None, status=200)

    async def list(self, *, active_only: bool = False) -> ApiResult:
        entries = [e for e in self._entries.values() if not active_only or e.end_time is None]
        # Active first, then most recent start.
        entries.sort(key=lambda e: (e.end_time is not None, -e.start_time))
        return ApiResult.ok(entries, status=200)

    async def update(self, entry_id: str, changes: dict[str, Any]) -> ApiResult:
        entry = self._entries.get(entry_id)
        if entry is None:
            return ApiResult.fail("Time entry not found", ErrorKind.REJECTED_TRANSITION, status=404)
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            return ApiResult.fail(
                f"Fields are not editable: {', '.join(sorted(unknown))}",
                ErrorKind.VALIDATION_FAILURE,
                status=422,
            )

        updated = replace(entry, **changes)
        if updated.end_time is not None and updated.end_time < updated.start_time:
            return ApiResult.fail(
                "End time must be after start time", ErrorKind.VALIDATION_FAILURE, status=422
            )
        if updated.end_time is not None:
            # Setting an end time finalizes the entry.
            if updated.duration is None:
                updated = replace(updated, duration=updated.end_time - updated.start_time)
            updated = replace(
                updated,
                is_paused=False,
                last_resumed_at=None,
                accumulated_duration=float(updated.duration or 0.0),
            )
        self._entries[entry_id] = updated
        return ApiResult.ok(updated, status=200)

    async def aclose(self) -> None:
        return

    def _transition(self, entry_id: str, fn: Callable[[TimeEntry, float], TimeEntry]) -> ApiResult:
        entry = self._entries.get(entry_id)
        if entry is None:
            return ApiResult.fail("Time entry not found", ErrorKind.REJECTED_TRANSITION, status=404)
        try:
            updated = fn(entry, self._clock())
        except TransitionRejected as e:
            return ApiResult.fail(e.message, ErrorKind.REJECTED_TRANSITION, status=400)
        self._entries[entry_id] = updated
        return ApiResult.ok(updated, status=200)
