# src/tasksync/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..remote.client import RemoteTaskService
from ..remote.offline import InMemoryTaskBackend
from ..sync.connectivity import ManualConnectivityMonitor
from ..sync.core import TaskSyncCore
from ..sync.facade import TaskSyncFacade
from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Store Settings on the state for easy access in other modules.
    settings: Any

    task_store: TaskStore
    remote: RemoteTaskService
    monitor: ManualConnectivityMonitor
    core: TaskSyncCore
    facade: TaskSyncFacade

    # Set when running against the in-process backend instead of a real server.
    demo_backend: InMemoryTaskBackend | None = None
