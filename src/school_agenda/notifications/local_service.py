# src/school_agenda/notifications/local_service.py

from __future__ import annotations

import asyncio
import inspect
import itertools
import logging
from typing import Any

from ..core.ports import NotificationListener, NotificationRequest

logger = logging.getLogger(__name__)


class LocalNotificationService:
    """
    In-process NotificationService.

    Delivery is a loop timer; "received" listeners fire when it expires.
    respond() simulates the user tapping a delivered notification.
    """

    def __init__(self, *, granted: bool = True, grant_on_request: bool = True) -> None:
        self._granted = granted
        self._grant_on_request = grant_on_request
        self._ids = itertools.count(1)
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self.delivered: dict[str, NotificationRequest] = {}
        self._received_listeners: list[NotificationListener] = []
        self._response_listeners: list[NotificationListener] = []
        self._pending: set[asyncio.Future[Any]] = set()

    async def get_permission(self) -> bool:
        return self._granted

    async def request_permission(self) -> bool:
        self._granted = self._grant_on_request
        logger.debug("Notification permission requested granted=%s", self._granted)
        return self._granted

    async def schedule(self, request: NotificationRequest) -> str:
        notification_id = f"local-{next(self._ids)}"
        loop = asyncio.get_running_loop()
        self._handles[notification_id] = loop.call_later(
            request.delay_seconds, self._deliver, notification_id, request
        )
        return notification_id

    def add_received_listener(self, listener: NotificationListener) -> None:
        self._received_listeners.append(listener)

    def add_response_listener(self, listener: NotificationListener) -> None:
        self._response_listeners.append(listener)

    def respond(self, notification_id: str) -> None:
        request = self.delivered.get(notification_id)
        if request is None:
            raise KeyError(notification_id)
        self._fire(self._response_listeners, request)

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def _deliver(self, notification_id: str, request: NotificationRequest) -> None:
        self._handles.pop(notification_id, None)
        self.delivered[notification_id] = request
        self._fire(self._received_listeners, request)

    def _fire(self, listeners: list[NotificationListener], request: NotificationRequest) -> None:
        for listener in list(listeners):
            try:
                result = listener(request)
                if inspect.isawaitable(result):
                    future = asyncio.ensure_future(result)
                    self._pending.add(future)
                    future.add_done_callback(self._listener_done)
            except Exception:
                logger.exception("Notification listener failed")

    def _listener_done(self, future: asyncio.Future[Any]) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        exc = future.exception()
        if exc is not None:
            logger.error("Notification listener failed", exc_info=exc)
