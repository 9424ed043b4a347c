# src/school_agenda/core/state.py

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field

from ..backup.coordinator import BackupCoordinator
from ..calendar_view.view import CalendarView
from ..notifications.scheduler import NotificationScheduler
from ..records.collections import SchoolRecords
from ..tasks.task_repository import TaskRepository
from .events import EventBus
from .ports import KeyValueRepo
from .session import SessionStore


@dataclass
class AppState:
    """
    Everything a front-end needs, created once at start-up and passed
    explicitly (no ambient globals).
    """

    settings: object

    store: KeyValueRepo
    bus: EventBus
    session: SessionStore
    tasks: TaskRepository
    calendar: CalendarView
    notifications: NotificationScheduler
    backups: BackupCoordinator
    records: SchoolRecords

    background: list[asyncio.Task[None]] = field(default_factory=list)
