# src/worktimer/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps the backend transport and the notification surface swappable and
makes testing easier.
"""

from typing import Any, Protocol

from .errors import ApiResult


class TimeEntryBackend(Protocol):
    """
    Remote collaborator that owns time entries.

    Every call returns an ApiResult; data is a TimeEntry (or a list of them for
    list(), None for remove()). Implementations must not raise for network or
    state errors.
    """

    async def start(self, task_id: str) -> ApiResult: ...
    async def pause(self, entry_id: str) -> ApiResult: ...
    async def resume(self, entry_id: str) -> ApiResult: ...
    async def stop(self, entry_id: str) -> ApiResult: ...
    async def remove(self, entry_id: str) -> ApiResult: ...
    async def list(self, *, active_only: bool = False) -> ApiResult: ...
    async def update(self, entry_id: str, changes: dict[str, Any]) -> ApiResult: ...
    async def aclose(self) -> None: ...


class Notifier(Protocol):
    """
    UI-side port for transient notifications.

    level is "success" | "error" | "info"; the surface decides how to show it.
    """

    def notify(self, level: str, message: str) -> None: ...
