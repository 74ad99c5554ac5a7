# src/tasksync/remote/envelope.py

from __future__ import annotations

"""
Response envelope of the task server.

Every endpoint answers {"success": bool, ...} with the payload under
"data" (or "serverTasks" for the bulk sync endpoint). The sync core never
sees this shape: RemoteTaskService unwraps it here.
"""

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from ..core.errors import NetworkError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Envelope:
    status_code: int
    success: bool
    data: Any = None
    server_tasks: list[dict[str, Any]] | None = None
    message: str | None = None

    @classmethod
    def parse(cls, response: httpx.Response) -> Envelope:
        try:
            body = response.json()
        except ValueError as e:
            raise NetworkError(
                f"Invalid JSON from {response.request.method} {response.request.url.path} "
                f"(HTTP {response.status_code})",
                status_code=response.status_code,
            ) from e

        if not isinstance(body, dict):
            raise NetworkError(
                f"Unexpected response shape (HTTP {response.status_code})",
                status_code=response.status_code,
            )

        server_tasks = body.get("serverTasks")
        return cls(
            status_code=response.status_code,
            success=body.get("success") is True,
            data=body.get("data"),
            server_tasks=server_tasks if isinstance(server_tasks, list) else None,
            message=str(body["message"]) if body.get("message") else None,
        )

    def require_success(self, *, task_id: int | None = None) -> Envelope:
        if self.success:
            return self
        if self.status_code == 404 and task_id is not None:
            raise NotFoundError(task_id, self.message)
        raise NetworkError(
            self.message or f"Server reported failure (HTTP {self.status_code})",
            status_code=self.status_code,
        )
