# src/tasksync/tasks/task_store.py

from __future__ import annotations

import contextlib
import json
import logging
import sqlite3
import threading
import time
from collections.abc import Iterable, Iterator
from dataclasses import replace
from pathlib import Path
from typing import Any

from ..core.errors import NotFoundError, StorageError, ValidationError
from .task_models import Task, TaskDraft, TaskLocation, TaskSource, TaskStats, newest_first, utc_now_iso

logger = logging.getLogger(__name__)

_TASK_COLUMNS = (
    "id",
    "title",
    "description",
    "location",
    "photo",
    "photo_name",
    "created_at",
    "updated_at",
    "source",
    "synced",
)

_UPDATABLE = {"title", "description", "location", "photo", "photo_name", "synced"}


class LocalIdGenerator:
    """
    Clock-derived ids for tasks created offline.

    Every id is the current time in milliseconds, bumped so it is strictly
    greater than both the last id issued here and `floor` (the largest id
    already stored). Ids therefore never repeat within one store, even if
    the wall clock steps backwards.
    """

    def __init__(self, floor: int = 0, clock=time.time) -> None:
        self._last = int(floor)
        self._clock = clock
        self._lock = threading.Lock()

    def observe(self, value: int) -> None:
        with self._lock:
            self._last = max(self._last, int(value))

    def next_id(self) -> int:
        with self._lock:
            candidate = int(self._clock() * 1000)
            if candidate <= self._last:
                candidate = self._last + 1
            self._last = candidate
            return candidate


class TaskStore:
    """
    SQLite local task store: durable cache of server tasks plus the outbox
    of tasks created while offline (synced = 0).

    Schema is created if missing and migrated by adding columns only.
    Each method opens its own short-lived connection.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3", *, id_generator: LocalIdGenerator | None = None) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()
        self._ids = id_generator or LocalIdGenerator()
        self._ids.observe(self._max_id())
        logger.info("TaskStore ready db=%s total=%s", self._db_path, self.count_tasks())

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    @contextlib.contextmanager
    def _session(self, op: str) -> Iterator[sqlite3.Connection]:
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise StorageError(f"{op}: cannot open {self._db_path}: {e}") from e
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            logger.exception("TaskStore %s failed", op)
            raise StorageError(f"{op} failed: {e}") from e
        finally:
            conn.close()

    def _ensure_schema(self) -> None:
        with self._session("ensure_schema") as conn:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY,
                    title TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    location TEXT,
                    photo TEXT,
                    photo_name TEXT,
                    created_at TEXT NOT NULL,
                    updated_at TEXT,
                    source TEXT NOT NULL DEFAULT 'local',
                    synced INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS settings (
                    key TEXT PRIMARY KEY,
                    value TEXT
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("TaskStore migration: added column %s", name)

            add_col("photo", "TEXT")
            add_col("photo_name", "TEXT")
            add_col("updated_at", "TEXT")
            add_col("source", "TEXT NOT NULL DEFAULT 'local'")
            add_col("synced", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_created ON tasks(created_at)")
            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_synced ON tasks(synced)")

    @staticmethod
    def _location_to_str(location: TaskLocation | None) -> str | None:
        if location is None:
            return None
        return json.dumps(location.to_dict(), ensure_ascii=False)

    @staticmethod
    def _str_to_location(s: str | None) -> TaskLocation | None:
        if not s:
            return None
        try:
            return TaskLocation.from_dict(json.loads(s))
        except ValueError:
            logger.warning("Dropping unreadable location JSON: %r", s)
            return None

    def _row_to_task(self, row: sqlite3.Row) -> Task:
        return Task(
            id=int(row["id"]),
            title=str(row["title"]),
            description=str(row["description"] or ""),
            location=self._str_to_location(row["location"]),
            photo=row["photo"],
            photo_name=row["photo_name"],
            created_at=str(row["created_at"]),
            updated_at=row["updated_at"],
            source=TaskSource.from_wire(row["source"]),
            synced=bool(row["synced"]),
        )

    def _task_params(self, task: Task) -> tuple[Any, ...]:
        return (
            int(task.id),
            task.title,
            task.description or "",
            self._location_to_str(task.location),
            task.photo,
            task.photo_name,
            task.created_at,
            task.updated_at,
            task.source.value,
            1 if task.synced else 0,
        )

    def _max_id(self) -> int:
        with self._session("max_id") as conn:
            (n,) = conn.execute("SELECT COALESCE(MAX(id), 0) FROM tasks").fetchone()
            return int(n)

    # ---- public API ----

    def count_tasks(self) -> int:
        with self._session("count_tasks") as conn:
            (n,) = conn.execute("SELECT COUNT(*) FROM tasks").fetchone()
            return int(n)

    def put(self, task: Task) -> Task:
        """Insert or overwrite the row with task.id."""
        if not task.title or not task.title.strip():
            raise ValidationError("Title is required")

        placeholders = ", ".join("?" for _ in _TASK_COLUMNS)
        assignments = ", ".join(f"{c} = excluded.{c}" for c in _TASK_COLUMNS if c != "id")
        with self._session("put") as conn:
            conn.execute(
                f"""
                INSERT INTO tasks({', '.join(_TASK_COLUMNS)})
                VALUES ({placeholders})
                ON CONFLICT(id) DO UPDATE SET {assignments}
                """,
                self._task_params(task),
            )
        self._ids.observe(task.id)
        logger.debug("Task put id=%s source=%s synced=%s", task.id, task.source.value, task.synced)
        return task

    def put_many(self, tasks: Iterable[Task]) -> int:
        n = 0
        for task in tasks:
            self.put(task)
            n += 1
        return n

    def create_local(self, draft: TaskDraft) -> Task:
        """Store a task created while offline. It stays pending until pushed."""
        draft.validate()
        payload = draft.to_payload()
        task = Task(
            id=self._ids.next_id(),
            title=payload["title"],
            description=payload["description"],
            location=draft.location,
            photo=draft.photo,
            photo_name=draft.photo_name,
            created_at=utc_now_iso(),
            source=TaskSource.LOCAL,
            synced=False,
        )
        with self._session("create_local") as conn:
            conn.execute(
                f"INSERT INTO tasks({', '.join(_TASK_COLUMNS)}) VALUES ({', '.join('?' for _ in _TASK_COLUMNS)})",
                self._task_params(task),
            )
        logger.info("Task created locally id=%s title=%r", task.id, task.title)
        return task

    def get_all(self) -> list[Task]:
        with self._session("get_all") as conn:
            rows = conn.execute("SELECT * FROM tasks ORDER BY created_at DESC, id DESC").fetchall()
            return newest_first(self._row_to_task(r) for r in rows)

    def get_by_id(self, task_id: int) -> Task | None:
        with self._session("get_by_id") as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (int(task_id),)).fetchone()
            return self._row_to_task(row) if row else None

    def update(self, task_id: int, **fields: Any) -> Task:
        """
        Merge fields into an existing task and stamp updated_at.

        location and photo are write-once: they may be attached to a task
        that has none, but never replaced.
        """
        unknown = set(fields) - _UPDATABLE
        if unknown:
            raise ValidationError(f"Unknown task fields: {', '.join(sorted(unknown))}")

        current = self.get_by_id(task_id)
        if current is None:
            raise NotFoundError(task_id)

        if isinstance(fields.get("location"), dict):
            fields["location"] = TaskLocation.from_dict(fields["location"])

        for name in ("location", "photo", "photo_name"):
            if name in fields and getattr(current, name) is not None and fields[name] != getattr(current, name):
                raise ValidationError(f"{name} is already attached to task {task_id}")

        if "title" in fields:
            title = str(fields["title"] or "").strip()
            if not title:
                raise ValidationError("Title is required")
            fields["title"] = title

        updated = replace(current, **fields, updated_at=utc_now_iso())
        self.put(updated)
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(fields))
        return updated

    def delete(self, task_id: int) -> bool:
        with self._session("delete") as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            removed = cur.rowcount == 1
        logger.debug("Task delete id=%s removed=%s", task_id, removed)
        return removed

    def clear(self) -> None:
        with self._session("clear") as conn:
            conn.execute("DELETE FROM tasks")
        logger.info("TaskStore cleared db=%s", self._db_path)

    def list_unsynced(self) -> list[Task]:
        """Pending tasks in the order they were created (replay order)."""
        with self._session("list_unsynced") as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE synced = 0 ORDER BY created_at ASC, id ASC"
            ).fetchall()
            return [self._row_to_task(r) for r in rows]

    def mark_synced(self, task_ids: Iterable[int]) -> int:
        ids = [int(i) for i in task_ids]
        if not ids:
            return 0
        placeholders = ",".join("?" for _ in ids)
        with self._session("mark_synced") as conn:
            cur = conn.execute(
                f"UPDATE tasks SET synced = 1, updated_at = ? WHERE id IN ({placeholders})",
                (utc_now_iso(), *ids),
            )
            return cur.rowcount

    def search(self, query: str) -> list[Task]:
        q = (query or "").strip().lower()
        if not q:
            return self.get_all()
        return [
            t
            for t in self.get_all()
            if q in t.title.lower() or q in (t.description or "").lower()
        ]

    def stats(self) -> TaskStats:
        tasks = self.get_all()
        return TaskStats(
            total=len(tasks),
            with_location=sum(1 for t in tasks if t.location is not None),
            with_description=sum(1 for t in tasks if t.description),
            with_photo=sum(1 for t in tasks if t.photo),
            pending=sum(1 for t in tasks if not t.synced),
        )

    # ---- settings table ----

    def get_setting(self, key: str, default: Any = None) -> Any:
        with self._session("get_setting") as conn:
            row = conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        if row is None or row["value"] is None:
            return default
        try:
            return json.loads(row["value"])
        except ValueError:
            return default

    def set_setting(self, key: str, value: Any) -> None:
        with self._session("set_setting") as conn:
            conn.execute(
                """
                INSERT INTO settings(key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value
                """,
                (key, json.dumps(value, ensure_ascii=False)),
            )
