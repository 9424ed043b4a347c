# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from school_agenda.cli.bootstrap import create_initial_state
from school_agenda.core.events import EventBus
from school_agenda.core.state import AppState
from school_agenda.storage.kv_store import KeyValueStore

from .fakes import FakeNotificationService, FakePicker, FakeRemoteStorage, FakeSharer

TODAY = date(2024, 5, 10)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment.
    """
    documents_dir = tmp_path / "documents"
    return SimpleNamespace(
        app_name="agenda-test",
        log_level="DEBUG",
        data_dir=tmp_path,
        store_db_path=tmp_path / "store.sqlite3",
        documents_dir=documents_dir,
        background_backup_dir=documents_dir / "backups",
        accent_color="#6c757d",
        notifications_enabled=True,
        notification_delay_seconds=0.0,
        backup_file_prefix="respaldo-actividades",
        background_backup_enabled=False,
        background_backup_interval_seconds=3600.0,
        restore_poll_interval_seconds=0.0,
        remote_enabled=False,
    )


@pytest.fixture()
def store(tmp_path: Path) -> KeyValueStore:
    return KeyValueStore(tmp_path / "kv.sqlite3")


@pytest.fixture()
def bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def notification_service() -> FakeNotificationService:
    return FakeNotificationService()


@pytest.fixture()
def sharer() -> FakeSharer:
    return FakeSharer()


@pytest.fixture()
def picker() -> FakePicker:
    return FakePicker()


@pytest.fixture()
def remote() -> FakeRemoteStorage:
    return FakeRemoteStorage()


@pytest.fixture()
def state(
    settings: SimpleNamespace,
    notification_service: FakeNotificationService,
    sharer: FakeSharer,
    picker: FakePicker,
    remote: FakeRemoteStorage,
) -> AppState:
    """
    AppState wired with deterministic fakes for the platform services.

    NOTE: The key-value store is the real SQLite one; its behaviour is part of
    what we want to test.
    """
    return create_initial_state(
        settings=settings,
        sharer=sharer,
        picker=picker,
        notification_service=notification_service,
        remote=remote,
        today=lambda: TODAY,
    )
