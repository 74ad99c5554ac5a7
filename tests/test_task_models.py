# tests/test_task_models.py

from __future__ import annotations

import pytest

from tasksync.core.errors import ValidationError
from tasksync.tasks.task_models import Task, TaskDraft, TaskLocation, TaskSource, newest_first


def test_from_dict_reads_wire_names_and_legacy_source() -> None:
    task = Task.from_dict(
        {
            "id": "12",
            "title": " Inspect roof ",
            "description": None,
            "location": {"latitude": "10.5", "longitude": -3, "accuracy": 25},
            "photoName": "roof.jpg",
            "photo": "data:image/jpeg;base64,/9j/",
            "createdAt": "2024-06-01T08:00:00.000Z",
            "source": "servidor",
            "unknownKey": True,
        }
    )

    assert task.id == 12
    assert task.title == "Inspect roof"
    assert task.description == ""
    assert task.location == TaskLocation(latitude=10.5, longitude=-3.0, accuracy=25.0)
    assert task.photo_name == "roof.jpg"
    assert task.source == TaskSource.SERVER
    assert task.synced is False


def test_to_dict_uses_camel_case() -> None:
    task = Task(id=1, title="t", created_at="2024-01-01T00:00:00.000Z", photo_name="p.png")

    raw = task.to_dict()

    assert raw["createdAt"] == "2024-01-01T00:00:00.000Z"
    assert raw["photoName"] == "p.png"
    assert raw["source"] == "local"
    assert Task.from_dict(raw) == task


def test_from_dict_rejects_missing_id_or_title() -> None:
    with pytest.raises(ValidationError):
        Task.from_dict({"title": "no id"})
    with pytest.raises(ValidationError):
        Task.from_dict({"id": 3, "title": "  "})


def test_missing_created_at_stays_empty_and_sorts_last() -> None:
    undated = Task.from_dict({"id": 9, "title": "no timestamp"})
    dated = Task.from_dict({"id": 1, "title": "dated", "createdAt": "2024-01-01T00:00:00.000Z"})

    assert undated.created_at == ""
    assert Task.from_dict({"id": 9, "title": "no timestamp"}) == undated
    assert [t.id for t in newest_first([undated, dated])] == [1, 9]


def test_draft_validation() -> None:
    TaskDraft(title="ok").validate()
    with pytest.raises(ValidationError):
        TaskDraft(title="").validate()


def test_newest_first_breaks_ties_by_id() -> None:
    same = "2024-01-01T00:00:00.000Z"
    tasks = [
        Task(id=1, title="a", created_at=same),
        Task(id=3, title="c", created_at=same),
        Task(id=2, title="b", created_at="2024-02-01T00:00:00+00:00"),
        Task(id=4, title="d", created_at="not a date"),
    ]

    assert [t.id for t in newest_first(tasks)] == [2, 3, 1, 4]
