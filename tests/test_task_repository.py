# tests/test_task_repository.py

from __future__ import annotations

import asyncio
import json

import pytest

from school_agenda.core.events import BACKUP_RESTORED, TASKS_CHANGED, EventBus
from school_agenda.errors import CorruptState, StorageWriteError, TaskNotFound, ValidationError
from school_agenda.storage.kv_store import KEY_LAST_CHECKED_RESTORE, KEY_LAST_RESTORE, KEY_TASKS
from school_agenda.tasks.task_models import Task, TaskStatus, Urgency
from school_agenda.tasks.task_repository import TaskRepository, run_restore_watcher

from .fakes import MemoryStore, RecordingNotifier


def _fixed_clock(value: float = 1_715_000_000.0):
    return lambda: value


@pytest.mark.asyncio
async def test_exam_lifecycle(store, bus) -> None:
    repo = TaskRepository(store, bus)
    await repo.load()
    assert repo.tasks == ()

    task = await repo.create(name="Exam", date="2024-05-10")
    assert task.status == TaskStatus.PENDING
    assert task.urgency == Urgency.MEDIUM
    assert task.id

    assert repo.list_for_date("2024-05-10") == [task]

    advanced = await repo.advance_status(task.id)
    assert advanced.status == TaskStatus.IN_PROGRESS

    await repo.delete(task.id)
    assert repo.list_for_date("2024-05-10") == []


@pytest.mark.asyncio
async def test_advance_status_is_a_three_cycle(store, bus) -> None:
    repo = TaskRepository(store, bus)
    task = await repo.create(name="Homework", date="2024-05-11")

    seen = [task.status]
    for _ in range(3):
        seen.append((await repo.advance_status(task.id)).status)

    assert seen == [
        TaskStatus.PENDING,
        TaskStatus.IN_PROGRESS,
        TaskStatus.COMPLETED,
        TaskStatus.PENDING,
    ]


@pytest.mark.asyncio
async def test_memory_matches_fresh_load_after_mutations(store, bus) -> None:
    repo = TaskRepository(store, bus)
    a = await repo.create(name="Exam", date="2024-05-10", urgency="high")
    b = await repo.create(name="Lab report", date="2024-05-10", description="chapter 3")
    c = await repo.create(name="Trip", date="2024-05-12")
    await repo.update(a.id, description="room 4", urgency=Urgency.LOW)
    await repo.advance_status(b.id)
    await repo.advance_status(b.id)
    await repo.delete(c.id)

    fresh = TaskRepository(store, EventBus())
    assert tuple(await fresh.load()) == repo.tasks


@pytest.mark.asyncio
async def test_list_for_date_keeps_insertion_order(store, bus) -> None:
    repo = TaskRepository(store, bus)
    z = await repo.create(name="Zeta", date="2024-05-10", urgency="high")
    await repo.create(name="Other day", date="2024-05-11")
    a = await repo.create(name="Alpha", date="2024-05-10", urgency="low")

    assert [t.id for t in repo.list_for_date("2024-05-10")] == [z.id, a.id]


@pytest.mark.asyncio
async def test_ids_are_unique_with_a_frozen_clock(bus) -> None:
    repo = TaskRepository(MemoryStore(), bus, clock=_fixed_clock())
    ids = [(await repo.create(name=f"t{i}", date="2024-05-10")).id for i in range(5)]
    assert len(set(ids)) == 5
    assert ids == sorted(ids, key=int)


@pytest.mark.asyncio
async def test_create_requires_a_name(bus) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus)

    with pytest.raises(ValidationError):
        await repo.create(name="   ", date="2024-05-10")
    with pytest.raises(ValidationError):
        await repo.create(name="Exam", date="10/05/2024")

    assert repo.tasks == ()
    assert KEY_TASKS not in mem.data


@pytest.mark.asyncio
async def test_update_cannot_touch_date_status_or_id(store, bus) -> None:
    repo = TaskRepository(store, bus)
    task = await repo.create(name="Exam", date="2024-05-10")

    for field in ("date", "status", "id"):
        with pytest.raises(ValidationError):
            await repo.update(task.id, **{field: "x"})

    with pytest.raises(ValidationError):
        await repo.update(task.id, urgency="urgent")
    with pytest.raises(ValidationError):
        await repo.update(task.id, name="")

    assert repo.get(task.id) == task


@pytest.mark.asyncio
async def test_unknown_ids_raise_task_not_found(store, bus) -> None:
    repo = TaskRepository(store, bus)
    with pytest.raises(TaskNotFound):
        await repo.update("nope", name="x")
    with pytest.raises(TaskNotFound):
        await repo.advance_status("nope")
    with pytest.raises(TaskNotFound):
        await repo.delete("nope")


@pytest.mark.asyncio
async def test_load_corrupt_json_falls_back_to_empty(bus) -> None:
    mem = MemoryStore({KEY_TASKS: "{not json"})
    repo = TaskRepository(mem, bus)

    assert await repo.load() == []
    assert isinstance(repo.last_load_error, CorruptState)


@pytest.mark.asyncio
async def test_load_rejects_non_array_and_malformed_entries(bus) -> None:
    repo = TaskRepository(MemoryStore({KEY_TASKS: json.dumps({"tasks": "[]"})}), bus)
    assert await repo.load() == []
    assert isinstance(repo.last_load_error, CorruptState)

    bad_entry = [{"id": "1", "name": "Exam", "date": "2024-05-10"}]
    repo = TaskRepository(MemoryStore({KEY_TASKS: json.dumps(bad_entry)}), bus)
    assert await repo.load() == []
    assert isinstance(repo.last_load_error, CorruptState)


@pytest.mark.asyncio
async def test_write_failure_is_reported_without_rollback(bus) -> None:
    mem = MemoryStore()
    notifier = RecordingNotifier()
    repo = TaskRepository(mem, bus, notifier=notifier)
    published: list[str] = []
    bus.subscribe(TASKS_CHANGED, lambda *, reason, **_: published.append(reason))

    mem.fail_writes = True
    with pytest.raises(StorageWriteError):
        await repo.create(name="Exam", date="2024-05-10")

    # Kept in memory and published, but nothing scheduled for a task that may vanish.
    assert [t.name for t in repo.tasks] == ["Exam"]
    assert published == ["create"]
    assert notifier.enqueued == []

    # The next successful write reconciles the store.
    mem.fail_writes = False
    await repo.advance_status(repo.tasks[0].id)
    stored = json.loads(mem.data[KEY_TASKS])
    assert [t["name"] for t in stored] == ["Exam"]


@pytest.mark.asyncio
async def test_notifier_failure_does_not_undo_creation(bus) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus, notifier=RecordingNotifier(fail=True))

    task = await repo.create(name="Exam", date="2024-05-10")

    assert repo.get(task.id) == task
    assert json.loads(mem.data[KEY_TASKS])[0]["id"] == task.id


@pytest.mark.asyncio
async def test_only_creation_notifies(bus) -> None:
    notifier = RecordingNotifier()
    repo = TaskRepository(MemoryStore(), bus, notifier=notifier)

    task = await repo.create(name="Exam", date="2024-05-10")
    await repo.update(task.id, description="bring a pencil")
    await repo.advance_status(task.id)

    assert [t.id for t in notifier.enqueued] == [task.id]


@pytest.mark.asyncio
async def test_mutations_publish_the_new_collection(store, bus) -> None:
    repo = TaskRepository(store, bus)
    snapshots: list[tuple[Task, ...]] = []
    bus.subscribe(TASKS_CHANGED, lambda *, tasks, **_: snapshots.append(tasks))

    task = await repo.create(name="Exam", date="2024-05-10")
    await repo.delete(task.id)

    assert [len(s) for s in snapshots] == [1, 0]


@pytest.mark.asyncio
async def test_backup_restored_event_reloads(bus) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus)
    await repo.create(name="Old", date="2024-05-10")

    restored = [Task(id="42", name="Restored", date="2024-06-01").to_dict()]
    mem.data[KEY_TASKS] = json.dumps(restored)
    mem.data[KEY_LAST_RESTORE] = "2024-05-10T12:00:00+00:00"
    await bus.publish(BACKUP_RESTORED, restored_at="2024-05-10T12:00:00+00:00", task_count=1)

    assert [t.name for t in repo.tasks] == ["Restored"]
    assert mem.data[KEY_LAST_CHECKED_RESTORE] == "2024-05-10T12:00:00+00:00"
    # Already seen through the event: the durable check has nothing to do.
    assert await repo.check_for_restore() is False


@pytest.mark.asyncio
async def test_check_for_restore_uses_the_durable_marker(bus) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus)
    await repo.load()
    assert await repo.check_for_restore() is False

    mem.data[KEY_TASKS] = json.dumps([Task(id="7", name="From file", date="2024-05-10").to_dict()])
    mem.data[KEY_LAST_RESTORE] = "2024-05-10T08:00:00+00:00"

    assert await repo.check_for_restore() is True
    assert [t.id for t in repo.tasks] == ["7"]
    assert await repo.check_for_restore() is False

    mem.data[KEY_LAST_RESTORE] = "2024-05-10T09:30:00+00:00"
    assert await repo.on_foreground() is True


@pytest.mark.asyncio
async def test_on_foreground_swallows_storage_errors(bus) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus)
    mem.fail_reads = True
    assert await repo.on_foreground() is False


@pytest.mark.asyncio
async def test_restore_markers_with_and_without_offset_compare_as_utc(bus) -> None:
    mem = MemoryStore(
        {
            KEY_TASKS: json.dumps([Task(id="7", name="From file", date="2024-05-10").to_dict()]),
            KEY_LAST_RESTORE: "2024-05-10T08:00:00",
            KEY_LAST_CHECKED_RESTORE: "2024-05-10T07:00:00+00:00",
        }
    )
    repo = TaskRepository(mem, bus)

    assert await repo.on_foreground() is True
    assert [t.id for t in repo.tasks] == ["7"]

    # Same instant, written once with and once without an offset.
    mem.data[KEY_LAST_RESTORE] = "2024-05-10T10:00:00+02:00"
    assert await repo.check_for_restore() is False


@pytest.mark.asyncio
async def test_on_foreground_logs_unexpected_errors(bus, monkeypatch, caplog) -> None:
    repo = TaskRepository(MemoryStore(), bus)

    async def broken() -> bool:
        raise RuntimeError("boom")

    monkeypatch.setattr(repo, "check_for_restore", broken)

    assert await repo.on_foreground() is False
    assert "Restore check on foreground failed" in caplog.text


async def _wait_until(predicate, timeout: float = 3.0) -> None:
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.02)

    await asyncio.wait_for(_poll(), timeout=timeout)


@pytest.mark.asyncio
async def test_restore_watcher_reloads_and_survives_failures(bus, caplog) -> None:
    mem = MemoryStore()
    repo = TaskRepository(mem, bus)
    await repo.load()

    runner = asyncio.create_task(run_restore_watcher(repo, interval_seconds=0.01))
    try:
        mem.data[KEY_TASKS] = json.dumps([Task(id="1", name="Restored", date="2024-05-10").to_dict()])
        mem.data[KEY_LAST_RESTORE] = "2024-05-10T08:00:00+00:00"
        await _wait_until(lambda: [t.id for t in repo.tasks] == ["1"])
        assert mem.data[KEY_LAST_CHECKED_RESTORE] == "2024-05-10T08:00:00+00:00"

        mem.fail_reads = True
        await _wait_until(lambda: "Restore check failed" in caplog.text)
        assert not runner.done()

        mem.fail_reads = False
        mem.data[KEY_TASKS] = json.dumps([Task(id="2", name="Again", date="2024-05-11").to_dict()])
        mem.data[KEY_LAST_RESTORE] = "2024-05-10T09:00:00+00:00"
        await _wait_until(lambda: [t.id for t in repo.tasks] == ["2"])
    finally:
        runner.cancel()
        with pytest.raises(asyncio.CancelledError):
            await runner
