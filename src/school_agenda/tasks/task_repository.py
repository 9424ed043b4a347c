# src/school_agenda/tasks/task_repository.py

"""
Task repository.

Owns the in-memory task collection and keeps it in step with the "tasks" slot
of the persisted store:
- every mutation is written through before the call returns,
- every mutation (and every reload) is published as TASKS_CHANGED,
- restores applied by the backup coordinator are picked up either from the
  BACKUP_RESTORED event or, after a process restart, from the durable
  lastRestoreTime marker.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any

from ..core.events import BACKUP_RESTORED, TASKS_CHANGED, EventBus
from ..core.ports import KeyValueRepo, TaskNotifier
from ..errors import CorruptState, StorageWriteError, TaskNotFound, ValidationError
from ..storage.kv_store import KEY_LAST_CHECKED_RESTORE, KEY_LAST_RESTORE, KEY_TASKS
from .task_models import Task, TaskStatus, Urgency, parse_date

logger = logging.getLogger(__name__)

_PATCHABLE_FIELDS = frozenset({"name", "description", "urgency"})


def _clean_name(raw: Any) -> str:
    name = str(raw or "").strip()
    if not name:
        raise ValidationError("name is required")
    return name


def _coerce_urgency(raw: Any) -> Urgency:
    try:
        return Urgency(raw)
    except ValueError as e:
        raise ValidationError(f"unknown urgency {raw!r}") from e


def _as_utc(raw: str) -> datetime:
    """Parse an ISO-8601 marker; naive values are taken as UTC."""
    value = datetime.fromisoformat(raw)
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_newer(restored: str, checked: str | None) -> bool:
    if not checked:
        return True
    try:
        return _as_utc(restored) > _as_utc(checked)
    except ValueError:
        return restored != checked


class TaskRepository:
    def __init__(
        self,
        store: KeyValueRepo,
        bus: EventBus,
        *,
        notifier: TaskNotifier | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._bus = bus
        self._notifier = notifier
        self._clock = clock
        self._tasks: list[Task] = []
        self._last_id = 0
        self.last_load_error: CorruptState | None = None
        self._unsubscribe = bus.subscribe(BACKUP_RESTORED, self._on_backup_restored)

    def close(self) -> None:
        self._unsubscribe()

    # ---- queries ----

    @property
    def tasks(self) -> tuple[Task, ...]:
        return tuple(self._tasks)

    def get(self, task_id: str) -> Task:
        return self._find(task_id)[1]

    def list_for_date(self, date: str) -> list[Task]:
        """Tasks of one day bucket, in insertion order."""
        return [t for t in self._tasks if t.date == date]

    # ---- load / persist ----

    async def load(self) -> list[Task]:
        """
        Replace the in-memory collection with the stored one.

        A missing slot yields an empty collection. Corrupt JSON is recorded in
        last_load_error and also yields an empty collection. StorageReadError
        propagates.
        """
        raw = await self._store.get_item(KEY_TASKS)
        self._tasks = self._decode(raw)
        logger.info("Loaded %d tasks", len(self._tasks))
        await self._publish("load")
        return list(self._tasks)

    def _decode(self, raw: str | None) -> list[Task]:
        self.last_load_error = None
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise CorruptState(f"tasks slot holds {type(data).__name__}, expected an array")
            return [Task.from_dict(item) for item in data]
        except (ValueError, CorruptState) as e:
            # json.JSONDecodeError and ValidationError are both ValueErrors.
            err = e if isinstance(e, CorruptState) else CorruptState(f"tasks slot is unreadable: {e}")
            self.last_load_error = err
            logger.warning("Stored tasks are corrupt, starting empty: %s", err)
            return []

    async def _persist(self) -> None:
        payload = json.dumps([t.to_dict() for t in self._tasks], ensure_ascii=False)
        await self._store.set_item(KEY_TASKS, payload)

    async def _commit(self, reason: str, task: Task) -> None:
        """
        Write through, then publish.

        On a write failure the in-memory change is kept and still published;
        the error is raised afterwards so the caller can report it.
        """
        error: StorageWriteError | None = None
        try:
            await self._persist()
        except StorageWriteError as e:
            error = e
            logger.error("Failed to persist tasks after %s id=%s: %s", reason, task.id, e)

        await self._publish(reason, task)

        if error is not None:
            raise error

    async def _publish(self, reason: str, task: Task | None = None) -> None:
        await self._bus.publish(TASKS_CHANGED, reason=reason, task=task, tasks=self.tasks)

    # ---- mutations ----

    def _new_id(self) -> str:
        candidate = max(int(self._clock() * 1000), self._last_id + 1)
        existing = {t.id for t in self._tasks}
        while str(candidate) in existing:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    def _find(self, task_id: str) -> tuple[int, Task]:
        for idx, task in enumerate(self._tasks):
            if task.id == task_id:
                return idx, task
        raise TaskNotFound(task_id)

    async def create(
        self,
        *,
        name: str,
        date: str,
        description: str = "",
        urgency: Urgency | str = Urgency.MEDIUM,
    ) -> Task:
        clean_name = _clean_name(name)
        bucket = parse_date(date)
        level = _coerce_urgency(urgency)

        task = Task(
            id=self._new_id(),
            name=clean_name,
            date=bucket,
            status=TaskStatus.PENDING,
            urgency=level,
            description=str(description or ""),
        )
        self._tasks.append(task)
        logger.info("Task created id=%s date=%s urgency=%s", task.id, task.date, task.urgency.value)

        await self._commit("create", task)
        self._notify(task)
        return task

    async def update(self, task_id: str, **patch: Any) -> Task:
        """Merge name/description/urgency into an existing task."""
        forbidden = set(patch) - _PATCHABLE_FIELDS
        if forbidden:
            raise ValidationError(f"fields cannot be edited: {', '.join(sorted(forbidden))}")

        idx, current = self._find(task_id)

        changes: dict[str, Any] = {}
        if "name" in patch:
            changes["name"] = _clean_name(patch["name"])
        if "description" in patch:
            changes["description"] = str(patch["description"] or "")
        if "urgency" in patch:
            changes["urgency"] = _coerce_urgency(patch["urgency"])

        updated = replace(current, **changes)
        self._tasks[idx] = updated
        logger.debug("Task updated id=%s fields=%s", task_id, sorted(changes))

        await self._commit("update", updated)
        return updated

    async def advance_status(self, task_id: str) -> Task:
        idx, current = self._find(task_id)
        updated = replace(current, status=current.status.next())
        self._tasks[idx] = updated
        logger.info("Task %s -> %s", task_id, updated.status.value)

        await self._commit("status", updated)
        return updated

    async def delete(self, task_id: str) -> Task:
        idx, current = self._find(task_id)
        del self._tasks[idx]
        logger.info("Task deleted id=%s", task_id)

        await self._commit("delete", current)
        return current

    def _notify(self, task: Task) -> None:
        if self._notifier is None:
            return
        try:
            self._notifier.enqueue(task)
        except Exception:
            logger.exception("Failed to enqueue notification task_id=%s", task.id)

    # ---- restore detection ----

    async def _on_backup_restored(self, *, restored_at: str, **_: Any) -> None:
        logger.info("Backup restored at %s, reloading tasks", restored_at)
        await self.load()
        await self._store.set_item(KEY_LAST_CHECKED_RESTORE, restored_at)

    async def check_for_restore(self) -> bool:
        """
        Durable fallback for restores this process did not see announced.

        Reloads when lastRestoreTime is newer than our own lastCheckedRestoreTime.
        """
        values = dict(await self._store.multi_get([KEY_LAST_RESTORE, KEY_LAST_CHECKED_RESTORE]))
        restored = values.get(KEY_LAST_RESTORE)
        checked = values.get(KEY_LAST_CHECKED_RESTORE)
        if not restored or not _is_newer(restored, checked):
            return False

        logger.info("Detected restore at %s (last checked %s), reloading tasks", restored, checked)
        await self.load()
        await self._store.set_item(KEY_LAST_CHECKED_RESTORE, restored)
        return True

    async def on_foreground(self) -> bool:
        """Called when the app returns to the foreground. Never raises."""
        try:
            return await self.check_for_restore()
        except Exception:
            logger.exception("Restore check on foreground failed")
            return False


async def run_restore_watcher(repo: TaskRepository, *, interval_seconds: float) -> None:
    """
    Poll the restore marker every interval_seconds.

    Failures are logged and the loop keeps going. To stop it, cancel the task.
    """
    sleep_s = max(0.5, float(interval_seconds))

    while True:
        try:
            await repo.check_for_restore()
        except Exception:
            logger.exception("Restore check failed")

        await asyncio.sleep(sleep_s)
