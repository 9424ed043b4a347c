# src/school_agenda/calendar_view/view.py

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from datetime import date as Date
from typing import Any

from ..core.events import MARKERS_CHANGED, TASKS_CHANGED, EventBus
from ..tasks.task_models import Task, format_date, parse_date
from .markers import MarkerMap, derive_markers

logger = logging.getLogger(__name__)


class CalendarView:
    """
    Derived calendar state: selected day + marker map.

    Subscribes to TASKS_CHANGED and republishes the recomputed map as
    MARKERS_CHANGED. The map is never edited in place.
    """

    def __init__(
        self,
        bus: EventBus,
        *,
        accent_color: str,
        today: Callable[[], Date] = Date.today,
        tasks: Iterable[Task] = (),
    ) -> None:
        self._bus = bus
        self._accent_color = accent_color
        self._today_fn = today
        self._today = format_date(today())
        self._selected = self._today
        self._tasks: tuple[Task, ...] = tuple(tasks)
        self._markers: MarkerMap = self._derive()
        self._unsubscribe = bus.subscribe(TASKS_CHANGED, self._on_tasks_changed)

    def close(self) -> None:
        self._unsubscribe()

    @property
    def selected_date(self) -> str:
        return self._selected

    @property
    def today(self) -> str:
        return self._today

    @property
    def markers(self) -> MarkerMap:
        return dict(self._markers)

    def tasks_for_selected(self) -> list[Task]:
        return [t for t in self._tasks if t.date == self._selected]

    def _derive(self) -> MarkerMap:
        return derive_markers(self._tasks, self._selected, self._today, self._accent_color)

    async def _recompute(self) -> None:
        self._markers = self._derive()
        logger.debug("Markers recomputed days=%d selected=%s", len(self._markers), self._selected)
        await self._bus.publish(MARKERS_CHANGED, markers=self.markers, selected_date=self._selected)

    async def _on_tasks_changed(self, *, tasks: tuple[Task, ...], **_: Any) -> None:
        self._tasks = tuple(tasks)
        await self._recompute()

    async def select_date(self, day: str) -> None:
        self._selected = parse_date(day)
        await self._recompute()

    async def refresh_today(self) -> bool:
        """
        Re-read the clock (e.g. on foreground); returns True when the day rolled over.

        A selection still on the old day moves to the new one.
        """
        new_today = format_date(self._today_fn())
        if new_today == self._today:
            return False
        if self._selected == self._today:
            self._selected = new_today
        self._today = new_today
        await self._recompute()
        return True
