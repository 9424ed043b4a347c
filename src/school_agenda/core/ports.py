# src/school_agenda/core/ports.py

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
Platform services (notifications, file sharing, file picking, cloud storage)
stay swappable and tests can use in-memory fakes.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol


class KeyValueRepo(Protocol):
    """Asynchronous string key-value storage (see storage.kv_store.KeyValueStore)."""

    async def get_item(self, key: str) -> str | None: ...
    async def set_item(self, key: str, value: str) -> None: ...
    async def remove_item(self, key: str) -> None: ...
    async def get_all_keys(self) -> list[str]: ...
    async def multi_get(self, keys: Iterable[str]) -> list[tuple[str, str | None]]: ...
    async def multi_set(self, pairs: Iterable[tuple[str, str]]) -> None: ...


class TaskNotifier(Protocol):
    """Fire-and-forget hook called after a task was created and persisted."""

    def enqueue(self, task: Any) -> None: ...


@dataclass(slots=True, frozen=True)
class NotificationRequest:
    title: str
    body: str
    data: dict[str, Any] = field(default_factory=dict)
    sound: str = "default"
    delay_seconds: float = 2.0


NotificationListener = Callable[[NotificationRequest], Any]


class NotificationService(Protocol):
    """
    Platform-side local notifications.

    Permission methods return True when notifications may be shown.
    schedule() returns a platform notification id.
    """

    async def get_permission(self) -> bool: ...
    async def request_permission(self) -> bool: ...
    async def schedule(self, request: NotificationRequest) -> str: ...
    def add_received_listener(self, listener: NotificationListener) -> None: ...
    def add_response_listener(self, listener: NotificationListener) -> None: ...


class FileSharer(Protocol):
    """Hands a local file to the platform share sheet."""

    async def share(self, path: Path, *, mime_type: str = "application/json") -> None: ...


class FilePicker(Protocol):
    """Lets the user pick a file; returns None when the picker was cancelled."""

    async def pick(self, *, mime_type: str = "application/json") -> Path | None: ...


@dataclass(slots=True, frozen=True)
class RemoteObject:
    name: str
    created_at: datetime | None


class RemoteBackupStorage(Protocol):
    """Object storage for backups (names are relative to the backup prefix)."""

    async def upload(self, name: str, content: str) -> None: ...
    async def list(self) -> list[RemoteObject]: ...
    async def download(self, name: str) -> str: ...
