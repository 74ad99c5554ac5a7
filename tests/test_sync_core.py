# tests/test_sync_core.py

from __future__ import annotations

import asyncio

import pytest

from tasksync.core.errors import StorageError, ValidationError
from tasksync.tasks.task_models import Task, TaskDraft, TaskSource

from tasksync.sync.connectivity import ManualConnectivityMonitor
from tasksync.sync.core import TaskSyncCore

from .fakes import FakeLocalStore, FakeRemote, SlowRemote


def _server_task(task_id: int, title: str, created_at: str) -> Task:
    return Task(id=task_id, title=title, created_at=created_at, source=TaskSource.SERVER)


@pytest.mark.asyncio
async def test_online_load_mirrors_remote_into_local(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {
        1: _server_task(1, "first", "2024-01-01T00:00:00.000Z"),
        2: _server_task(2, "second", "2024-02-01T00:00:00.000Z"),
    }
    core, _ = make_core(online=True)

    tasks = await core.load()
    await core.load()

    assert [t.id for t in tasks] == [2, 1]
    assert sorted(local.rows) == [1, 2]
    assert all(t.synced for t in local.rows.values())
    assert [t.id for t in core.tasks] == [2, 1]


@pytest.mark.asyncio
async def test_offline_load_reads_local_store(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    local.put(_server_task(3, "cached", "2024-01-01T00:00:00.000Z"))
    core, _ = make_core(online=False)

    tasks = await core.load()

    assert [t.id for t in tasks] == [3]
    assert remote.calls == []


@pytest.mark.asyncio
async def test_load_degrades_to_local_when_remote_errors(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    local.put(_server_task(3, "cached", "2024-01-01T00:00:00.000Z"))
    remote.down = True
    core, _ = make_core(online=True)

    tasks = await core.load()

    assert [t.id for t in tasks] == [3]
    assert remote.calls_named("list_tasks") == [None]


@pytest.mark.asyncio
async def test_load_drops_stale_synced_copies_but_keeps_pending(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    local.put(Task(id=9, title="deleted on server", created_at="2024-01-01T00:00:00.000Z", synced=True))
    pending = local.create_local(TaskDraft(title="offline note"))
    core, _ = make_core(online=True)

    await core.load()

    assert 9 not in local.rows
    assert pending.id in local.rows


@pytest.mark.asyncio
async def test_storage_error_propagates_from_offline_load(make_core, local: FakeLocalStore) -> None:
    local.fail = True
    core, _ = make_core(online=False)

    with pytest.raises(StorageError):
        await core.load()


@pytest.mark.asyncio
async def test_online_create_goes_to_server_and_is_mirrored(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, _ = make_core(online=True)

    task = await core.create(TaskDraft(title="Pay rent"))

    assert task.source == TaskSource.SERVER
    assert task.synced is True
    assert local.rows[task.id] == task
    assert core.tasks[0] == task


@pytest.mark.asyncio
async def test_offline_create_is_pending_and_first_on_next_load(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    local.put(_server_task(1, "older", "2024-01-01T00:00:00.000Z"))
    core, _ = make_core(online=False)
    await core.load()

    task = await core.create(TaskDraft(title="x"))

    assert task.synced is False
    assert task.id not in (1,)
    assert core.tasks[0] == task

    tasks = await core.load()
    assert tasks[0] == task
    assert remote.calls == []


@pytest.mark.asyncio
async def test_create_falls_back_to_local_when_server_write_fails(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.down = True
    core, _ = make_core(online=True)

    task = await core.create(TaskDraft(title="Survives outage"))

    assert task.synced is False
    assert local.list_unsynced() == [task]
    assert core.tasks[0] == task


@pytest.mark.asyncio
async def test_create_with_empty_title_touches_no_store(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, _ = make_core(online=True)

    with pytest.raises(ValidationError):
        await core.create(TaskDraft(title=""))

    assert local.calls == []
    assert remote.calls == []


@pytest.mark.asyncio
async def test_delete_online_hits_server_and_local(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {5: _server_task(5, "five", "2024-01-01T00:00:00.000Z")}
    core, _ = make_core(online=True)
    await core.load()

    result = await core.delete(5)

    assert result.remote_deleted is True
    assert result.removed_locally is True
    assert 5 not in remote.tasks
    assert 5 not in local.rows
    assert core.tasks == []


@pytest.mark.asyncio
async def test_delete_is_local_even_when_server_delete_fails(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {5: _server_task(5, "five", "2024-01-01T00:00:00.000Z")}
    core, _ = make_core(online=True)
    await core.load()
    remote.down = True

    result = await core.delete(5)

    assert result.remote_error is not None
    assert result.removed_locally is True
    assert core.tasks == []
    assert len(remote.calls_named("delete_task")) == 1


@pytest.mark.asyncio
async def test_offline_delete_is_undone_by_next_remote_load(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {5: _server_task(5, "five", "2024-01-01T00:00:00.000Z")}
    core, monitor = make_core(online=True)
    await core.load()
    await monitor.set_online(False)

    await core.delete(5)
    assert [t.id for t in await core.load()] == []
    assert remote.calls_named("delete_task") == []

    # Server still has id=5; the authoritative fetch on reconnect brings it back.
    await monitor.set_online(True)
    assert [t.id for t in core.tasks] == [5]
    assert 5 in local.rows


@pytest.mark.asyncio
async def test_reconnect_replays_pending_in_one_batch_then_loads_once(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, monitor = make_core(online=False)
    a = await core.create(TaskDraft(title="A"))
    b = await core.create(TaskDraft(title="B"))
    assert a.id < b.id

    await monitor.set_online(True)

    batches = remote.calls_named("sync_tasks")
    assert len(batches) == 1
    assert [t.id for t in batches[0]] == [a.id, b.id]
    assert [n for n, _ in remote.calls] == ["sync_tasks", "list_tasks"]

    # Server copies are canonical; the one with the highest server id is first.
    assert [t.title for t in core.tasks] == ["B", "A"]
    assert core.tasks[0].id == max(remote.tasks)
    assert local.list_unsynced() == []
    assert a.id not in local.rows and b.id not in local.rows


@pytest.mark.asyncio
async def test_failed_sync_keeps_tasks_pending_for_next_reconnect(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, monitor = make_core(online=False)
    task = await core.create(TaskDraft(title="A"))
    remote.down = True

    await monitor.set_online(True)

    assert local.list_unsynced() == [task]
    assert [t.id for t in core.tasks] == [task.id]

    await monitor.set_online(False)
    remote.down = False
    await monitor.set_online(True)

    assert local.list_unsynced() == []
    assert len(remote.calls_named("sync_tasks")) == 2
    assert [t.title for t in core.tasks] == ["A"]


@pytest.mark.asyncio
async def test_reconnect_without_pending_only_loads(make_core, remote: FakeRemote) -> None:
    core, monitor = make_core(online=False)

    await monitor.set_online(True)

    assert [n for n, _ in remote.calls] == ["list_tasks"]


@pytest.mark.asyncio
async def test_going_offline_moves_no_data(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, monitor = make_core(online=True)

    await monitor.set_online(False)

    assert core.online is False
    assert remote.calls == []
    assert local.calls == []


@pytest.mark.asyncio
async def test_concurrent_sync_calls_share_one_request(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, _ = make_core(online=False)
    await core.create(TaskDraft(title="A"))
    await core.handle_transition(True)
    remote.calls.clear()

    local.put(Task(id=123, title="stray", created_at="2024-01-01T00:00:00.000Z"))

    first, second = await asyncio.gather(core.sync_pending(), core.sync_pending())

    assert first == second
    assert len(remote.calls_named("sync_tasks")) == 1


@pytest.mark.asyncio
async def test_stopped_core_ignores_transitions(make_core, remote: FakeRemote) -> None:
    core, monitor = make_core(online=False)
    core.stop()

    await monitor.set_online(True)

    assert core.online is False
    assert remote.calls == []


@pytest.mark.asyncio
async def test_online_load_keeps_pending_in_view_without_syncing(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {1: _server_task(1, "server", "2024-01-01T00:00:00.000Z")}
    pending = local.create_local(TaskDraft(title="from last session"))
    core, _ = make_core(online=True)

    tasks = await core.load()

    assert [t.id for t in tasks] == [pending.id, 1]
    assert remote.calls_named("sync_tasks") == []


@pytest.mark.asyncio
async def test_write_during_outage_is_replayed_by_next_online_load(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    remote.tasks = {1: _server_task(1, "server", "2024-01-01T00:00:00.000Z")}
    core, _ = make_core(online=True)
    remote.down = True
    task = await core.create(TaskDraft(title="A"))
    assert task.synced is False

    remote.down = False
    tasks = await core.load()

    assert [n for n, _ in remote.calls] == ["create_task", "list_tasks", "sync_tasks", "list_tasks"]
    assert [t.title for t in tasks] == ["A", "server"]
    assert tasks[0].synced is True
    assert local.list_unsynced() == []

    await core.load()
    assert len(remote.calls_named("sync_tasks")) == 1


@pytest.mark.asyncio
async def test_failed_replay_keeps_task_in_view_and_retries(make_core, local: FakeLocalStore, remote: FakeRemote) -> None:
    core, _ = make_core(online=True)
    remote.down = True
    task = await core.create(TaskDraft(title="A"))

    tasks = await core.load()
    assert [t.id for t in tasks] == [task.id]
    assert remote.calls_named("sync_tasks") == []

    remote.down = False
    await core.load()

    assert len(remote.calls_named("sync_tasks")) == 1
    assert local.list_unsynced() == []


@pytest.mark.asyncio
async def test_concurrent_creates_reach_the_server_one_at_a_time(local: FakeLocalStore) -> None:
    slow = SlowRemote()
    core = TaskSyncCore(local, slow, ManualConnectivityMonitor(initial=True))

    a, b = await asyncio.gather(core.create(TaskDraft(title="A")), core.create(TaskDraft(title="B")))

    assert slow.max_in_flight == 1
    assert (a.id, b.id) == (1, 2)
    assert [t.title for t in core.tasks] == ["B", "A"]


@pytest.mark.asyncio
async def test_concurrent_deletes_reach_the_server_one_at_a_time(local: FakeLocalStore) -> None:
    slow = SlowRemote(
        [
            _server_task(5, "five", "2024-01-01T00:00:00.000Z"),
            _server_task(6, "six", "2024-01-02T00:00:00.000Z"),
        ]
    )
    core = TaskSyncCore(local, slow, ManualConnectivityMonitor(initial=True))
    await core.load()

    first, second = await asyncio.gather(core.delete(5), core.delete(6))

    assert slow.max_in_flight == 1
    assert first.remote_deleted and second.remote_deleted
    assert slow.tasks == {}
    assert core.tasks == []
