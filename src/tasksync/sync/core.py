# src/tasksync/sync/core.py

from __future__ import annotations

"""
Offline-first sync core.

Decides, for every read and write, whether the server or the local store
is authoritative, mirrors server reads into the local store, keeps tasks
created offline in an outbox (synced = False) and replays that outbox in
one bulk request when connectivity returns.

The online flag is taken from the monitor once at construction and then
changes only through handle_transition(); nothing here polls.
"""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, replace

from ..core.errors import NetworkError, NotFoundError
from ..core.ports import ConnectivityMonitor, LocalTaskRepo, RemoteTaskRepo
from ..tasks.task_models import Task, TaskDraft, newest_first

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SyncResult:
    pushed: int = 0
    ok: bool = True
    error: str | None = None
    reloaded: bool = False


@dataclass(slots=True, frozen=True)
class DeleteResult:
    task_id: int
    removed_locally: bool
    remote_deleted: bool = False
    remote_error: str | None = None
    remote_missing: bool = False


class TaskSyncCore:
    def __init__(
            self,
            local: LocalTaskRepo,
            remote: RemoteTaskRepo,
            monitor: ConnectivityMonitor,
    ) -> None:
        self._local = local
        self._remote = remote
        self._monitor = monitor
        self._online = bool(monitor.is_online())
        self._tasks: list[Task] = []

        # Single-flight guards: one create / delete at a time, one shared sync.
        self._create_lock = asyncio.Lock()
        self._delete_lock = asyncio.Lock()
        self._sync_task: asyncio.Task[SyncResult] | None = None
        # Pending rows written while online (server write failed); replayed on the next online load.
        self._outbox_stranded = False

        self._unsubscribe: Callable[[], None] | None = None

    # ---- state ----

    @property
    def online(self) -> bool:
        return self._online

    @property
    def tasks(self) -> list[Task]:
        return list(self._tasks)

    def start(self) -> None:
        """Subscribe to connectivity transitions."""
        if self._unsubscribe is None:
            self._unsubscribe = self._monitor.subscribe(self.handle_transition)
            logger.info("TaskSyncCore started (online=%s)", self._online)

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
            logger.info("TaskSyncCore stopped")

    # ---- operations ----

    async def load(self) -> list[Task]:
        """
        Refresh the working set.

        Online: the server list wins and is mirrored into the local store;
        pending local tasks stay in view next to it. Any network failure
        falls through to the local store, so this never raises for
        connectivity problems.
        """
        tasks, from_server = await self._refresh()

        # A create that fell back while online has no reconnect to wait for.
        if from_server and self._outbox_stranded:
            result = await self.sync_pending()
            if result.reloaded:
                return self.tasks

        return tasks

    async def _refresh(self) -> tuple[list[Task], bool]:
        if self._online:
            try:
                remote_tasks = await self._remote.list_tasks()
            except NetworkError as e:
                logger.warning("load: server unavailable, using local tasks (%s)", e)
            else:
                mirrored = self._mirror(remote_tasks)
                pending = self._local.list_unsynced()
                merged = newest_first([*mirrored, *pending])
                self._tasks = merged
                logger.info("load: %d tasks from server, %d pending", len(remote_tasks), len(pending))
                return list(merged), True

        local_tasks = self._local.get_all()
        self._tasks = local_tasks
        logger.info("load: %d tasks from local store", len(local_tasks))
        return list(local_tasks), False

    def _mirror(self, remote_tasks: list[Task]) -> list[Task]:
        mirrored = [self._local.put(replace(task, synced=True)) for task in remote_tasks]
        remote_ids = {t.id for t in mirrored}

        # Synced rows the server no longer has are stale copies; pending rows stay.
        for task in self._local.get_all():
            if task.synced and task.id not in remote_ids:
                self._local.delete(task.id)
                logger.debug("mirror: dropped stale local copy id=%s", task.id)
        return mirrored

    async def create(self, draft: TaskDraft) -> Task:
        draft.validate()

        async with self._create_lock:
            task: Task | None = None

            if self._online:
                try:
                    server_task = await self._remote.create_task(draft)
                except NetworkError as e:
                    logger.warning("create: server write failed, keeping task locally (%s)", e)
                    self._outbox_stranded = True
                else:
                    task = self._local.put(replace(server_task, synced=True))
                    logger.info("create: task id=%s stored on server", task.id)

            if task is None:
                task = self._local.create_local(draft)
                logger.info("create: task id=%s stored locally (pending sync)", task.id)

            self._tasks = [task, *(t for t in self._tasks if t.id != task.id)]
            return task

    async def delete(self, task_id: int) -> DeleteResult:
        """
        Remote delete is best-effort and never retried; the local delete and
        the working-set removal always happen.
        """
        task_id = int(task_id)

        async with self._delete_lock:
            remote_deleted = False
            remote_missing = False
            remote_error: str | None = None

            if self._online:
                try:
                    await self._remote.delete_task(task_id)
                    remote_deleted = True
                except NotFoundError:
                    remote_missing = True
                    logger.info("delete: task id=%s not on server", task_id)
                except NetworkError as e:
                    remote_error = str(e)
                    logger.warning("delete: server delete failed id=%s (%s)", task_id, e)

            removed = self._local.delete(task_id)
            self._tasks = [t for t in self._tasks if t.id != task_id]

            return DeleteResult(
                task_id=task_id,
                removed_locally=removed,
                remote_deleted=remote_deleted,
                remote_error=remote_error,
                remote_missing=remote_missing,
            )

    async def sync_pending(self) -> SyncResult:
        """Push the outbox in one request. Concurrent callers share the same run."""
        if self._sync_task is None or self._sync_task.done():
            self._sync_task = asyncio.create_task(self._push_pending())
        return await self._sync_task

    async def _push_pending(self) -> SyncResult:
        if not self._online:
            return SyncResult(ok=False, error="offline")

        self._outbox_stranded = False

        pending = self._local.list_unsynced()
        if not pending:
            logger.debug("sync: nothing pending")
            return SyncResult()

        logger.info("sync: pushing %d pending tasks", len(pending))
        try:
            server_tasks = await self._remote.sync_tasks(pending)
        except NetworkError as e:
            logger.warning("sync: failed, %d tasks stay pending (%s)", len(pending), e)
            self._outbox_stranded = True
            return SyncResult(ok=False, error=str(e))

        # The server re-issued the pushed tasks under its own ids.
        for task in pending:
            self._local.delete(task.id)
        for task in server_tasks:
            self._local.put(replace(task, synced=True))

        await self._refresh()
        return SyncResult(pushed=len(pending), ok=True, reloaded=True)

    async def handle_transition(self, online: bool) -> None:
        online = bool(online)
        if online == self._online:
            return

        self._online = online
        if not online:
            logger.info("Offline: serving from local store")
            return

        logger.info("Back online: syncing pending tasks")
        result = await self.sync_pending()
        if not result.reloaded:
            await self._refresh()
