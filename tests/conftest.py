# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from worktimer.cli.bootstrap import create_initial_state
from worktimer.core.state import AppState
from worktimer.timing.actions import TimeTrackingService
from worktimer.timing.entry_store import EntryStore

from .fakes import FakeBackend, FakeClock, FakeNotifier


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """Offline settings with a fast tick; not read from the environment."""
    return SimpleNamespace(
        app_name="worktimer-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        api_base_url=None,
        api_timeout_seconds=1.0,
        tick_interval_seconds=0.01,
        reconcile_after_actions=True,
        single_active_per_task=False,
        console_enabled=False,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend(clock: FakeClock) -> FakeBackend:
    return FakeBackend(clock)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def store() -> EntryStore:
    return EntryStore()


@pytest.fixture()
def service(backend: FakeBackend, store: EntryStore, notifier: FakeNotifier, clock: FakeClock) -> TimeTrackingService:
    return TimeTrackingService(backend, store, notifier=notifier, clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, backend: FakeBackend, notifier: FakeNotifier) -> AppState:
    """AppState wired through the real bootstrap with a fake backend."""
    return create_initial_state(settings=settings, backend=backend, notifier=notifier)
