# src/school_agenda/core/events.py

"""
In-process publish/subscribe.

Replaces implicit "state changed -> re-render" triggers with an explicit
contract: the task repository publishes, derived views subscribe.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable
from typing import Any

logger = logging.getLogger(__name__)

TASKS_CHANGED = "tasks_changed"
MARKERS_CHANGED = "markers_changed"
BACKUP_RESTORED = "backup_restored"

EventHandler = Callable[..., Any]


class EventBus:
    """
    Topic -> handlers registry.

    Handlers receive the published keyword payload and may be plain callables
    or coroutine functions. A failing handler is logged and skipped; it never
    propagates into the publisher.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, list[EventHandler]] = {}

    def subscribe(self, topic: str, handler: EventHandler) -> Callable[[], None]:
        self._handlers.setdefault(topic, []).append(handler)

        def _unsubscribe() -> None:
            handlers = self._handlers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

        return _unsubscribe

    def handler_count(self, topic: str) -> int:
        return len(self._handlers.get(topic, []))

    async def publish(self, topic: str, **payload: Any) -> None:
        # Copy: handlers may unsubscribe while we iterate.
        for handler in list(self._handlers.get(topic, [])):
            try:
                result = handler(**payload)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("Event handler failed topic=%s handler=%r", topic, handler)
