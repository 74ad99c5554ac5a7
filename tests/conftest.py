# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from tasksync.sync.connectivity import ManualConnectivityMonitor
from tasksync.sync.core import TaskSyncCore
from tasksync.tasks.task_store import TaskStore

from .fakes import FakeLocalStore, FakeRemote


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with create_initial_state.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="tasksync-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        tasks_db_path=tmp_path / "tasks.sqlite3",
        api_base_url="",
        http_connect_timeout=1.0,
        http_read_timeout=1.0,
        start_online=True,
        probe_enabled=False,
        probe_interval_seconds=0.01,
        console_enabled=False,
    )


@pytest.fixture()
def store(tmp_path: Path) -> TaskStore:
    return TaskStore(tmp_path / "tasks.sqlite3")


@pytest.fixture()
def local() -> FakeLocalStore:
    return FakeLocalStore()


@pytest.fixture()
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture()
def make_core(local: FakeLocalStore, remote: FakeRemote):
    """Build a started TaskSyncCore with the given initial connectivity."""

    def _make(online: bool = True) -> tuple[TaskSyncCore, ManualConnectivityMonitor]:
        monitor = ManualConnectivityMonitor(initial=online)
        core = TaskSyncCore(local, remote, monitor)
        core.start()
        return core, monitor

    return _make
