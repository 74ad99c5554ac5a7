# src/tasksync/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the sync core.

The core depends on Protocols instead of concrete implementations.
This keeps the SQLite store, the HTTP client and the connectivity source
swappable and makes testing easier.
"""

from collections.abc import Awaitable, Callable, Iterable
from typing import Any, Protocol

from ..tasks.task_models import Task, TaskDraft, TaskStats

TransitionListener = Callable[[bool], Awaitable[None]]
# Called with True on offline -> online, False on online -> offline.


class LocalTaskRepo(Protocol):
    """Durable local storage. Synchronous: SQLite calls are short and local."""

    def put(self, task: Task) -> Task: ...
    def create_local(self, draft: TaskDraft) -> Task: ...
    def get_all(self) -> list[Task]: ...
    def get_by_id(self, task_id: int) -> Task | None: ...
    def update(self, task_id: int, **fields: Any) -> Task: ...
    def delete(self, task_id: int) -> bool: ...
    def clear(self) -> None: ...

    # Outbox
    def list_unsynced(self) -> list[Task]: ...
    def mark_synced(self, task_ids: Iterable[int]) -> int: ...

    # Read-only conveniences
    def search(self, query: str) -> list[Task]: ...
    def stats(self) -> TaskStats: ...


class RemoteTaskRepo(Protocol):
    """Network CRUD. Raises NetworkError / NotFoundError, nothing else."""

    async def list_tasks(self) -> list[Task]: ...
    async def get_task(self, task_id: int) -> Task: ...
    async def create_task(self, draft: TaskDraft) -> Task: ...
    async def update_task(self, task_id: int, fields: dict[str, Any]) -> Task: ...
    async def delete_task(self, task_id: int) -> Task: ...
    async def sync_tasks(self, tasks: Iterable[Task]) -> list[Task]: ...
    async def ping(self) -> bool: ...


class ConnectivityMonitor(Protocol):
    def is_online(self) -> bool: ...

    def subscribe(self, listener: TransitionListener) -> Callable[[], None]:
        """Register a transition listener; returns a callable that unsubscribes it."""
        ...
