# src/tasksync/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires the store, the HTTP client, the monitor, the sync core and the
  facade into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.state import AppState
from ..remote.client import RemoteTaskService, make_timeout
from ..remote.offline import InMemoryTaskBackend
from ..sync.connectivity import ManualConnectivityMonitor
from ..sync.core import TaskSyncCore
from ..sync.facade import TaskSyncFacade
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)

DEMO_BASE_URL = "http://tasksync.local"


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def create_initial_state(*, settings=None, backend: InMemoryTaskBackend | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings(). With no API base URL configured the
    remote client talks to an in-process InMemoryTaskBackend (or the one passed in).
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    timeout = make_timeout(settings.http_connect_timeout, settings.http_read_timeout)
    base_url = (getattr(settings, "api_base_url", "") or "").strip()

    if base_url and backend is None:
        remote = RemoteTaskService(base_url, timeout=timeout)
        logger.info("Remote task server: %s", base_url)
    else:
        backend = backend or InMemoryTaskBackend.with_sample_task()
        remote = RemoteTaskService(DEMO_BASE_URL, timeout=timeout, transport=backend.transport())
        logger.info("No API base URL configured; using the in-process demo backend.")

    task_store = TaskStore(settings.tasks_db_path)
    monitor = ManualConnectivityMonitor(initial=settings.start_online)
    core = TaskSyncCore(task_store, remote, monitor)
    facade = TaskSyncFacade(core, task_store)

    return AppState(
        settings=settings,
        task_store=task_store,
        remote=remote,
        monitor=monitor,
        core=core,
        facade=facade,
        demo_backend=backend,
    )


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    state.core.stop()
    try:
        await state.remote.aclose()
    except Exception:
        logger.debug("HTTP client close failed.", exc_info=True)
    state.task_store.close()
