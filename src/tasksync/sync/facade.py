# src/tasksync/sync/facade.py

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..core.errors import StorageError, TaskSyncError, ValidationError
from ..core.ports import LocalTaskRepo
from ..tasks.task_models import Task, TaskDraft, TaskLocation, TaskStats
from .core import TaskSyncCore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class OperationOutcome:
    """What the UI gets back: data on success, one readable message otherwise."""

    ok: bool
    tasks: list[Task] = field(default_factory=list)
    task: Task | None = None
    message: str | None = None


class TaskSyncFacade:
    """The only entry point the UI layer calls."""

    def __init__(self, core: TaskSyncCore, local: LocalTaskRepo) -> None:
        self._core = core
        self._local = local

    @property
    def is_online(self) -> bool:
        return self._core.online

    @property
    def tasks(self) -> list[Task]:
        return self._core.tasks

    async def load(self) -> OperationOutcome:
        try:
            tasks = await self._core.load()
        except StorageError as e:
            logger.error("load failed: %s", e)
            return OperationOutcome(ok=False, message=f"Local storage failed: {e}")
        return OperationOutcome(ok=True, tasks=tasks)

    async def create(
        self,
        title: str,
        description: str = "",
        location: TaskLocation | None = None,
        photo: str | None = None,
        photo_name: str | None = None,
    ) -> OperationOutcome:
        draft = TaskDraft(
            title=title,
            description=description,
            location=location,
            photo=photo,
            photo_name=photo_name,
        )
        try:
            task = await self._core.create(draft)
        except ValidationError as e:
            return OperationOutcome(ok=False, message=str(e))
        except StorageError as e:
            logger.error("create failed: %s", e)
            return OperationOutcome(ok=False, message=f"Local storage failed: {e}")

        note = "Saved on the server" if task.synced else "Saved locally (will sync when online)"
        return OperationOutcome(ok=True, task=task, tasks=self._core.tasks, message=note)

    async def delete(self, task_id: int) -> OperationOutcome:
        try:
            result = await self._core.delete(task_id)
        except StorageError as e:
            logger.error("delete failed: %s", e)
            return OperationOutcome(ok=False, message=f"Local storage failed: {e}")

        tasks = self._core.tasks
        if result.remote_error is not None:
            return OperationOutcome(ok=True, tasks=tasks, message="Deleted locally; server delete failed")
        if not result.removed_locally and not result.remote_deleted:
            return OperationOutcome(ok=False, tasks=tasks, message=f"Task {task_id} not found")
        return OperationOutcome(ok=True, tasks=tasks, message="Task deleted")

    async def sync(self) -> OperationOutcome:
        """Manual replay of the outbox (normally triggered by reconnect)."""
        if not self._core.online:
            return OperationOutcome(ok=False, message="Offline: nothing can be synced now")
        try:
            result = await self._core.sync_pending()
        except StorageError as e:
            return OperationOutcome(ok=False, message=f"Local storage failed: {e}")
        if not result.ok:
            return OperationOutcome(ok=False, tasks=self._core.tasks, message=f"Sync failed: {result.error}")
        if result.pushed == 0:
            return OperationOutcome(ok=True, tasks=self._core.tasks, message="Nothing to sync")
        return OperationOutcome(ok=True, tasks=self._core.tasks, message=f"Synced {result.pushed} tasks")

    # ---- local read-only helpers ----

    def search(self, query: str) -> OperationOutcome:
        try:
            return OperationOutcome(ok=True, tasks=self._local.search(query))
        except TaskSyncError as e:
            return OperationOutcome(ok=False, message=str(e))

    def stats(self) -> TaskStats:
        return self._local.stats()

    def pending_count(self) -> int:
        return len(self._local.list_unsynced())
