# src/tasksync/core/errors.py

from __future__ import annotations

"""
Error taxonomy shared by the stores, the remote client and the sync core.

Propagation rules:
- NetworkError is caught by the sync core and degraded to local data.
- StorageError propagates: there is no tier below local storage.
- ValidationError is raised before any store is touched.
"""


class TaskSyncError(Exception):
    """Base class for all tasksync errors."""


class ValidationError(TaskSyncError):
    pass


class NetworkError(TaskSyncError):
    """Transport failure or a response without success=true."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(TaskSyncError):
    def __init__(self, task_id: int, message: str | None = None) -> None:
        super().__init__(message or f"Task {task_id} not found")
        self.task_id = task_id


class StorageError(TaskSyncError):
    pass
