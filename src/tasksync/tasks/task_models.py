# src/tasksync/tasks/task_models.py

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import ValidationError


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a trailing Z."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _parse_ts(raw: str | None) -> datetime:
    if not raw:
        return datetime.min.replace(tzinfo=UTC)
    try:
        dt = datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return datetime.min.replace(tzinfo=UTC)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


class TaskSource(StrEnum):
    """Where a task was first created. Display only, never used to resolve conflicts."""

    SERVER = "server"
    LOCAL = "local"

    @classmethod
    def from_wire(cls, raw: str | None) -> TaskSource:
        if not raw:
            return cls.LOCAL
        value = str(raw).strip().lower()
        # Older servers tagged their records in Spanish.
        if value in ("server", "servidor"):
            return cls.SERVER
        return cls.LOCAL


@dataclass(frozen=True, slots=True)
class TaskLocation:
    latitude: float
    longitude: float
    accuracy: float | None = None
    timestamp: str | int | float | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"latitude": self.latitude, "longitude": self.longitude}
        if self.accuracy is not None:
            out["accuracy"] = self.accuracy
        if self.timestamp is not None:
            out["timestamp"] = self.timestamp
        return out

    @classmethod
    def from_dict(cls, raw: Any) -> TaskLocation | None:
        if not isinstance(raw, dict):
            return None
        try:
            lat = float(raw["latitude"])
            lon = float(raw["longitude"])
        except (KeyError, TypeError, ValueError):
            return None
        acc = raw.get("accuracy")
        return cls(
            latitude=lat,
            longitude=lon,
            accuracy=float(acc) if acc is not None else None,
            timestamp=raw.get("timestamp"),
        )


@dataclass(frozen=True, slots=True)
class TaskDraft:
    """User input for a new task, before any store has assigned an id."""

    title: str
    description: str = ""
    location: TaskLocation | None = None
    photo: str | None = None
    photo_name: str | None = None

    def validate(self) -> None:
        if not self.title or not self.title.strip():
            raise ValidationError("Title is required")

    def to_payload(self) -> dict[str, Any]:
        return {
            "title": self.title.strip(),
            "description": (self.description or "").strip(),
            "location": self.location.to_dict() if self.location else None,
            "photo": self.photo,
            "photoName": self.photo_name,
        }


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    created_at: str
    description: str = ""
    location: TaskLocation | None = None
    photo: str | None = None
    photo_name: str | None = None
    updated_at: str | None = None
    source: TaskSource = TaskSource.LOCAL
    synced: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "location": self.location.to_dict() if self.location else None,
            "photo": self.photo,
            "photoName": self.photo_name,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "source": self.source.value,
            "synced": self.synced,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Task:
        try:
            task_id = int(raw["id"])
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Task payload has no usable id: {raw!r}") from e

        title = str(raw.get("title") or "").strip()
        if not title:
            raise ValidationError(f"Task {task_id} has an empty title")

        return cls(
            id=task_id,
            title=title,
            description=str(raw.get("description") or ""),
            location=TaskLocation.from_dict(raw.get("location")),
            photo=raw.get("photo") or None,
            photo_name=raw.get("photoName") or None,
            created_at=str(raw.get("createdAt") or ""),
            updated_at=raw.get("updatedAt") or None,
            source=TaskSource.from_wire(raw.get("source")),
            synced=bool(raw.get("synced", False)),
        )


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int = 0
    with_location: int = 0
    with_description: int = 0
    with_photo: int = 0
    pending: int = 0


def newest_first(tasks: Iterable[Task]) -> list[Task]:
    """Sort by created_at descending; ties are broken by the larger id."""
    return sorted(tasks, key=lambda t: (_parse_ts(t.created_at), t.id), reverse=True)
