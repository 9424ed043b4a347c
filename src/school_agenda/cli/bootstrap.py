# src/school_agenda/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppState,
- starts/stops the background loops (notifications worker, hourly backup,
  optional restore polling).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from datetime import date as Date

from ..backup.background import run_background_backup
from ..backup.coordinator import BackupCoordinator
from ..backup.remote import SupabaseBackupStorage
from ..calendar_view.view import CalendarView
from ..config import get_settings
from ..core.events import EventBus
from ..core.ports import FilePicker, FileSharer, NotificationService, RemoteBackupStorage
from ..core.session import SessionStore
from ..core.state import AppState
from ..errors import AgendaError
from ..notifications.local_service import LocalNotificationService
from ..notifications.scheduler import NotificationScheduler
from ..records.collections import SchoolRecords
from ..storage.kv_store import KeyValueStore
from ..tasks.task_repository import TaskRepository, run_restore_watcher

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.store_db_path.parent.mkdir(parents=True, exist_ok=True)
    settings.documents_dir.mkdir(parents=True, exist_ok=True)
    settings.background_backup_dir.mkdir(parents=True, exist_ok=True)


def _build_remote(settings) -> RemoteBackupStorage | None:
    if not getattr(settings, "remote_enabled", False):
        return None
    return SupabaseBackupStorage(
        base_url=settings.remote_url,
        api_key=settings.remote_api_key,
        bucket=settings.remote_bucket,
        prefix=settings.remote_prefix,
        timeout_seconds=settings.remote_timeout_seconds,
    )


def create_initial_state(
    *,
    settings=None,
    sharer: FileSharer | None = None,
    picker: FilePicker | None = None,
    notification_service: NotificationService | None = None,
    remote: RemoteBackupStorage | None = None,
    today: Callable[[], Date] = Date.today,
) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings and platform services injectable makes the app easy to
    test. If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    store = KeyValueStore(settings.store_db_path)
    bus = EventBus()

    notifications = NotificationScheduler(
        notification_service or LocalNotificationService(),
        delay_seconds=settings.notification_delay_seconds,
        enabled=settings.notifications_enabled,
    )
    tasks = TaskRepository(store, bus, notifier=notifications)
    calendar = CalendarView(bus, accent_color=settings.accent_color, today=today)
    backups = BackupCoordinator(
        store,
        bus,
        documents_dir=settings.documents_dir,
        file_prefix=settings.backup_file_prefix,
        sharer=sharer,
        picker=picker,
        remote=remote if remote is not None else _build_remote(settings),
    )

    return AppState(
        settings=settings,
        store=store,
        bus=bus,
        session=SessionStore(store),
        tasks=tasks,
        calendar=calendar,
        notifications=notifications,
        backups=backups,
        records=SchoolRecords(store),
    )


async def start_state(state: AppState) -> None:
    """Load persisted data and start background loops. Must run on the event loop."""
    settings = state.settings

    try:
        await state.tasks.load()
        await state.records.load_all()
        # Restores applied while we were not running.
        await state.tasks.check_for_restore()
    except AgendaError:
        logger.exception("Initial load failed; continuing with what could be read")

    state.notifications.attach_listeners()
    state.notifications.start()

    if getattr(settings, "background_backup_enabled", False):
        state.background.append(
            asyncio.create_task(
                run_background_backup(
                    state.backups,
                    directory=settings.background_backup_dir,
                    interval_seconds=settings.background_backup_interval_seconds,
                ),
                name="background-backup",
            )
        )

    poll_s = float(getattr(settings, "restore_poll_interval_seconds", 0.0) or 0.0)
    if poll_s > 0:
        state.background.append(
            asyncio.create_task(
                run_restore_watcher(state.tasks, interval_seconds=poll_s),
                name="restore-watcher",
            )
        )

    logger.info("Started with %d tasks, %d background loops", len(state.tasks.tasks), len(state.background))


async def shutdown_state(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    for task in state.background:
        task.cancel()
    for task in state.background:
        with contextlib.suppress(asyncio.CancelledError, Exception):
            await task
    state.background.clear()

    try:
        await state.notifications.stop()
    except Exception:
        logger.debug("Notification worker stop failed.", exc_info=True)

    state.calendar.close()
    state.tasks.close()
