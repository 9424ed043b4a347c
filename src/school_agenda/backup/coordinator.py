# src/school_agenda/backup/coordinator.py

"""
Backup/restore coordinator.

create_backup():  tasks slot -> JSON array -> local file (+ share sheet) or remote object.
restore_backup(): local file (picker) or latest remote object -> strict validation
                  -> tasks slot replaced wholesale + lastRestoreTime marker
                  -> BACKUP_RESTORED published on the event bus.

A payload that fails validation never reaches the store.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import StrEnum
from pathlib import Path

from ..core.events import BACKUP_RESTORED, EventBus
from ..core.ports import FilePicker, FileSharer, KeyValueRepo, RemoteBackupStorage, RemoteObject
from ..errors import (
    BackupNotFound,
    CorruptState,
    InvalidBackupFormat,
    NetworkError,
    StorageReadError,
    StorageWriteError,
)
from ..storage.kv_store import KEY_LAST_RESTORE, KEY_TASKS
from ..tasks.task_models import Task
from .bundle import FILE_SUFFIX, backup_file_name, encode_bundle, parse_bundle, unique_file_name

logger = logging.getLogger(__name__)


class BackupTarget(StrEnum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass(slots=True, frozen=True)
class BackupResult:
    target: BackupTarget
    file_name: str
    location: str
    task_count: int


@dataclass(slots=True, frozen=True)
class RestoreResult:
    source: BackupTarget
    file_name: str
    task_count: int
    restored_at: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _write_new_file(path: Path, content: str) -> None:
    if path.exists():
        raise FileExistsError(str(path))
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(content, "utf-8")
    os.replace(tmp, path)


def _existing_names(directory: Path) -> set[str]:
    if not directory.is_dir():
        return set()
    return {p.name for p in directory.glob(f"*{FILE_SUFFIX}")}


def _created_key(obj: RemoteObject) -> tuple[float, str]:
    ts = obj.created_at.timestamp() if obj.created_at is not None else float("-inf")
    return ts, obj.name


class BackupCoordinator:
    def __init__(
        self,
        store: KeyValueRepo,
        bus: EventBus,
        *,
        documents_dir: str | Path,
        file_prefix: str = "respaldo-actividades",
        sharer: FileSharer | None = None,
        picker: FilePicker | None = None,
        remote: RemoteBackupStorage | None = None,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._bus = bus
        self._documents_dir = Path(documents_dir)
        self._prefix = file_prefix
        self._sharer = sharer
        self._picker = picker
        self._remote = remote
        self._now = now
        # Names handed out by this instance; keeps same-second backups apart.
        self._issued: set[str] = set()

    @property
    def remote_enabled(self) -> bool:
        return self._remote is not None

    def _require_remote(self) -> RemoteBackupStorage:
        if self._remote is None:
            raise NetworkError("remote backup storage is not configured")
        return self._remote

    # ---- export ----

    async def _snapshot(self) -> list[Task]:
        raw = await self._store.get_item(KEY_TASKS)
        if raw is None:
            return []
        try:
            return parse_bundle(raw)
        except InvalidBackupFormat as e:
            raise CorruptState(f"stored tasks cannot be exported: {e}") from e

    async def _write_file(self, path: Path, content: str) -> Path:
        try:
            await asyncio.to_thread(_write_new_file, path, content)
        except OSError as e:
            raise StorageWriteError(f"cannot write backup {path}: {e}") from e
        return path

    def _claim_name(self, taken: set[str]) -> str:
        name = unique_file_name(backup_file_name(self._prefix, self._now()), taken | self._issued)
        self._issued.add(name)
        return name

    async def _export_local(self, directory: Path, content: str) -> Path:
        taken = await asyncio.to_thread(_existing_names, directory)
        name = self._claim_name(taken)
        return await self._write_file(directory / name, content)

    async def export_to_directory(self, directory: str | Path) -> Path:
        """Write a timestamped bundle of the tasks slot into directory."""
        tasks = await self._snapshot()
        path = await self._export_local(Path(directory), encode_bundle(tasks))
        logger.info("Exported %d tasks to %s", len(tasks), path)
        return path

    async def create_backup(self, target: BackupTarget | str) -> BackupResult:
        target = BackupTarget(target)
        tasks = await self._snapshot()
        content = encode_bundle(tasks)

        if target == BackupTarget.LOCAL:
            path = await self._export_local(self._documents_dir, content)
            if self._sharer is not None:
                await self._sharer.share(path, mime_type="application/json")
            logger.info("Local backup created %s tasks=%d", path, len(tasks))
            return BackupResult(target=target, file_name=path.name, location=str(path), task_count=len(tasks))

        remote = self._require_remote()
        # Uploads never overwrite: skip names the bucket already holds.
        name = self._claim_name({obj.name for obj in await remote.list()})
        await remote.upload(name, content)
        logger.info("Remote backup created %s tasks=%d", name, len(tasks))
        return BackupResult(target=target, file_name=name, location=f"remote:{name}", task_count=len(tasks))

    # ---- restore ----

    async def restore_backup(self, source: BackupTarget | str) -> RestoreResult | None:
        """
        Restore tasks from a local file or the newest remote backup.

        Returns None when the user cancelled the file picker.
        """
        source = BackupTarget(source)

        if source == BackupTarget.LOCAL:
            if self._picker is None:
                raise BackupNotFound("no file picker available for local restore")
            path = await self._picker.pick(mime_type="application/json")
            if path is None:
                logger.info("Local restore cancelled")
                return None
            try:
                text = await asyncio.to_thread(Path(path).read_text, "utf-8")
            except UnicodeDecodeError as e:
                raise InvalidBackupFormat(f"backup {path} is not UTF-8 text: {e}") from e
            except OSError as e:
                raise StorageReadError(f"cannot read backup {path}: {e}") from e
            file_name = Path(path).name
        else:
            remote = self._require_remote()
            objects = await remote.list()
            if not objects:
                raise BackupNotFound("no remote backups available")
            latest = max(objects, key=_created_key)
            text = await remote.download(latest.name)
            file_name = latest.name

        return await self.apply_bundle(text, source=source, file_name=file_name)

    async def apply_bundle(self, text: str, *, source: BackupTarget, file_name: str) -> RestoreResult:
        tasks = parse_bundle(text)
        restored_at = self._now().isoformat()
        payload = json.dumps([t.to_dict() for t in tasks], ensure_ascii=False)

        # One transaction: the tasks slot and the marker change together.
        await self._store.multi_set([(KEY_TASKS, payload), (KEY_LAST_RESTORE, restored_at)])
        logger.info("Restored %d tasks from %s (%s)", len(tasks), file_name, source.value)

        await self._bus.publish(BACKUP_RESTORED, restored_at=restored_at, task_count=len(tasks))
        return RestoreResult(source=source, file_name=file_name, task_count=len(tasks), restored_at=restored_at)
