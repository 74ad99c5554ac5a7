# src/tasksync/remote/client.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

import httpx

from ..core.errors import NetworkError, ValidationError
from ..tasks.task_models import Task, TaskDraft, utc_now_iso
from .envelope import Envelope

logger = logging.getLogger(__name__)

API_PREFIX = "/api"


def make_timeout(connect_s: float = 5.0, read_s: float = 15.0) -> httpx.Timeout:
    """Per-phase timeouts; write/pool follow the connect budget."""
    connect_s = max(0.1, float(connect_s))
    read_s = max(connect_s, float(read_s))
    return httpx.Timeout(connect=connect_s, read=read_s, write=connect_s, pool=connect_s)


def _tasks_from_payload(raw: Any) -> list[Task]:
    if not isinstance(raw, list):
        raise NetworkError("Server returned a non-list task collection")
    out: list[Task] = []
    for item in raw:
        if not isinstance(item, dict):
            logger.warning("Skipping malformed task entry: %r", item)
            continue
        try:
            out.append(Task.from_dict(item))
        except ValidationError:
            logger.warning("Skipping invalid task entry: %r", item)
    return out


def _task_from_payload(raw: Any) -> Task:
    if not isinstance(raw, dict):
        raise NetworkError("Server returned no task data")
    try:
        return Task.from_dict(raw)
    except ValidationError as e:
        raise NetworkError(f"Server returned an invalid task: {e}") from e


class RemoteTaskService:
    """
    REST client for the task server.

    Every failure surfaces as NetworkError (or NotFoundError for a missing
    id); httpx exceptions never leak out of this class. No automatic
    retries: the sync core decides what to do on failure.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: httpx.Timeout | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=timeout or make_timeout(),
            transport=transport,
            headers={"Accept": "application/json"},
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> RemoteTaskService:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        task_id: int | None = None,
    ) -> Envelope:
        url = f"{API_PREFIX}{path}"
        try:
            response = await self._client.request(method, url, json=json)
        except httpx.TimeoutException as e:
            logger.info("Remote %s %s timed out: %s", method, url, e.__class__.__name__)
            raise NetworkError(f"Timed out talking to the server ({method} {url})") from e
        except httpx.HTTPError as e:
            logger.info("Remote %s %s failed: %s", method, url, e.__class__.__name__)
            raise NetworkError(f"Server unreachable ({method} {url})") from e

        envelope = Envelope.parse(response)
        logger.debug("Remote %s %s -> %s success=%s", method, url, response.status_code, envelope.success)
        return envelope.require_success(task_id=task_id)

    async def list_tasks(self) -> list[Task]:
        env = await self._request("GET", "/tasks")
        return _tasks_from_payload(env.data)

    async def get_task(self, task_id: int) -> Task:
        env = await self._request("GET", f"/tasks/{int(task_id)}", task_id=task_id)
        return _task_from_payload(env.data)

    async def create_task(self, draft: TaskDraft) -> Task:
        payload = draft.to_payload()
        payload["createdAt"] = utc_now_iso()
        env = await self._request("POST", "/tasks", json=payload)
        return _task_from_payload(env.data)

    async def update_task(self, task_id: int, fields: dict[str, Any]) -> Task:
        env = await self._request("PUT", f"/tasks/{int(task_id)}", json=fields, task_id=task_id)
        return _task_from_payload(env.data)

    async def delete_task(self, task_id: int) -> Task:
        env = await self._request("DELETE", f"/tasks/{int(task_id)}", task_id=task_id)
        return _task_from_payload(env.data)

    async def sync_tasks(self, tasks: Iterable[Task]) -> list[Task]:
        """Push client-originated tasks in one request; returns the server's full list."""
        body = {"tasks": [t.to_dict() for t in tasks]}
        env = await self._request("POST", "/tasks/sync", json=body)
        if env.server_tasks is None:
            raise NetworkError("Sync response did not include serverTasks")
        return _tasks_from_payload(env.server_tasks)

    async def ping(self) -> bool:
        try:
            await self._request("GET", "/tasks")
        except NetworkError:
            return False
        return True
