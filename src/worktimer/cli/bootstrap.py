# src/worktimer/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the backend (REST when an API URL is configured, in-memory otherwise),
- wires store, coordinator and service into AppState.
"""

from __future__ import annotations

import logging

from ..api.http_backend import HttpTimeEntryBackend
from ..api.memory_backend import InMemoryTimeEntryBackend
from ..config import get_settings
from ..core.ports import Notifier, TimeEntryBackend
from ..core.state import AppState
from ..timing.actions import TimeTrackingService
from ..timing.coordinator import GlobalTimerCoordinator
from ..timing.entry_store import EntryStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)


def create_backend(settings) -> TimeEntryBackend:
    if settings.api_base_url:
        logger.info("Using REST backend at %s", settings.api_base_url)
        return HttpTimeEntryBackend(
            settings.api_base_url,
            timeout_seconds=settings.api_timeout_seconds,
        )
    # Demo / local runs without a server.
    logger.info("No API URL configured; using in-memory backend (offline mode).")
    return InMemoryTimeEntryBackend(
        enforce_single_active_per_task=settings.single_active_per_task,
    )


def create_initial_state(
    *,
    settings=None,
    backend: TimeEntryBackend | None = None,
    notifier: Notifier | None = None,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    if backend is None:
        backend = create_backend(settings)

    store = EntryStore()
    coordinator = GlobalTimerCoordinator(interval_seconds=settings.tick_interval_seconds)
    service = TimeTrackingService(
        backend,
        store,
        notifier=notifier,
        reconcile=settings.reconcile_after_actions,
    )

    return AppState(
        settings=settings,
        backend=backend,
        store=store,
        coordinator=coordinator,
        service=service,
        notifier=notifier,
    )


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    state.service.close()
    state.coordinator.dispose()
    try:
        await state.backend.aclose()
    except Exception:
        logger.debug("Backend close failed.", exc_info=True)
