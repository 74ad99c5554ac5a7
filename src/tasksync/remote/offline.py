# src/tasksync/remote/offline.py

from __future__ import annotations

import json
import logging
import re
import threading
from typing import Any

import httpx

from ..tasks.task_models import TaskSource, utc_now_iso

logger = logging.getLogger(__name__)

_TASK_PATH = re.compile(r"^/api/tasks/(?P<id>-?\d+)/?$")


class InMemoryTaskBackend:
    """
    In-process stand-in for the task server, used for demos and tests when
    no API base URL is configured.

    Holds the canonical task list in memory and answers the same envelope
    shapes as the real server. Plug it into httpx via `transport()`.

    Behavior:
    - ids come from a sequence counter
    - POST without a title -> 400
    - unknown id -> 404
    - /api/tasks/sync appends client tasks as new records, once per client id
    - `reachable = False` makes every request fail with a connection error
    """

    def __init__(self, seed: list[dict[str, Any]] | None = None, *, reachable: bool = True) -> None:
        self.reachable = reachable
        self._lock = threading.Lock()
        self._tasks: list[dict[str, Any]] = [dict(t) for t in (seed or [])]
        self._next_id = max((int(t["id"]) for t in self._tasks), default=0) + 1
        self._synced_client_ids: set[int] = set()
        self.requests: list[tuple[str, str]] = []

    @classmethod
    def with_sample_task(cls) -> InMemoryTaskBackend:
        return cls(
            seed=[
                {
                    "id": 1,
                    "title": "Sample server task",
                    "description": "This task comes from the server",
                    "createdAt": utc_now_iso(),
                    "location": None,
                    "source": TaskSource.SERVER.value,
                }
            ]
        )

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    @property
    def tasks(self) -> list[dict[str, Any]]:
        with self._lock:
            return [dict(t) for t in self._tasks]

    # ---- request handling ----

    def __call__(self, request: httpx.Request) -> httpx.Response:
        method = request.method.upper()
        path = request.url.path
        self.requests.append((method, path))

        if not self.reachable:
            raise httpx.ConnectError("Task server is unreachable", request=request)

        body: Any = None
        if request.content:
            try:
                body = json.loads(request.content)
            except ValueError:
                return self._fail(400, "Invalid JSON body")

        with self._lock:
            if path.rstrip("/") == "/api/tasks":
                if method == "GET":
                    return self._ok({"data": [dict(t) for t in self._tasks], "source": "remote server"})
                if method == "POST":
                    return self._create(body)
            elif path.rstrip("/") == "/api/tasks/sync" and method == "POST":
                return self._sync(body)
            else:
                m = _TASK_PATH.match(path)
                if m:
                    return self._item(method, int(m.group("id")), body)

        return self._fail(404, f"No route for {method} {path}")

    @staticmethod
    def _ok(payload: dict[str, Any], status: int = 200) -> httpx.Response:
        return httpx.Response(status, json={"success": True, **payload})

    @staticmethod
    def _fail(status: int, message: str) -> httpx.Response:
        return httpx.Response(status, json={"success": False, "message": message})

    def _find(self, task_id: int) -> int:
        for i, t in enumerate(self._tasks):
            if int(t["id"]) == task_id:
                return i
        return -1

    def _new_record(self, body: dict[str, Any], *, created_at: str | None = None) -> dict[str, Any]:
        record = {
            "id": self._next_id,
            "title": str(body["title"]).strip(),
            "description": body.get("description") or "",
            "location": body.get("location") or None,
            "createdAt": created_at or utc_now_iso(),
            "source": TaskSource.SERVER.value,
        }
        if body.get("photo"):
            record["photo"] = body["photo"]
            record["photoName"] = body.get("photoName")
        self._next_id += 1
        self._tasks.append(record)
        return record

    def _create(self, body: Any) -> httpx.Response:
        if not isinstance(body, dict) or not str(body.get("title") or "").strip():
            return self._fail(400, "Title is required")
        record = self._new_record(body)
        logger.debug("Backend created task id=%s", record["id"])
        return self._ok({"message": "Task created on the server", "data": dict(record)}, status=201)

    def _item(self, method: str, task_id: int, body: Any) -> httpx.Response:
        idx = self._find(task_id)
        if idx < 0:
            return self._fail(404, "Task not found")

        if method == "GET":
            return self._ok({"data": dict(self._tasks[idx])})

        if method == "PUT":
            updates = body if isinstance(body, dict) else {}
            updates = {k: v for k, v in updates.items() if k not in ("id", "createdAt")}
            self._tasks[idx] = {**self._tasks[idx], **updates, "updatedAt": utc_now_iso()}
            return self._ok({"data": dict(self._tasks[idx])})

        if method == "DELETE":
            deleted = self._tasks.pop(idx)
            return self._ok({"message": "Task deleted from the server", "data": deleted})

        return self._fail(405, f"Method {method} not allowed")

    def _sync(self, body: Any) -> httpx.Response:
        client_tasks = body.get("tasks") if isinstance(body, dict) else None
        if not isinstance(client_tasks, list):
            return self._fail(400, "Expected {tasks: [...]}")

        added = 0
        for item in client_tasks:
            if not isinstance(item, dict) or not str(item.get("title") or "").strip():
                continue
            client_id = item.get("id")
            if isinstance(client_id, int):
                if client_id in self._synced_client_ids:
                    continue
                self._synced_client_ids.add(client_id)
            self._new_record(item, created_at=item.get("createdAt"))
            added += 1

        logger.info("Backend sync: received=%s added=%s", len(client_tasks), added)
        return self._ok(
            {
                "message": "Tasks synchronized with the server",
                "serverTasks": [dict(t) for t in self._tasks],
            }
        )
