# src/school_agenda/notifications/scheduler.py

"""
Notification scheduler.

A small queue + worker that:
- receives freshly created tasks (enqueue() never blocks the caller),
- checks / requests notification permission,
- schedules a one-shot local notification through the injected service.

The worker is decoupled from persistence: whatever happens here cannot touch
stored tasks. Denied permission is logged and skipped, never retried.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from ..core.ports import NotificationRequest, NotificationService
from ..errors import PermissionDenied
from ..tasks.task_models import Task

logger = logging.getLogger(__name__)

NOTIFICATION_TITLE = "Nueva actividad"


def build_request(task: Task, *, delay_seconds: float) -> NotificationRequest:
    return NotificationRequest(
        title=NOTIFICATION_TITLE,
        body=f"Actividad: {task.name}",
        data={"task_id": task.id},
        sound="default",
        delay_seconds=delay_seconds,
    )


class NotificationScheduler:
    def __init__(
        self,
        service: NotificationService,
        *,
        delay_seconds: float = 2.0,
        enabled: bool = True,
    ) -> None:
        self._service = service
        self._delay_seconds = max(0.0, float(delay_seconds))
        self._enabled = enabled
        self._queue: asyncio.Queue[Task] = asyncio.Queue()
        self._worker: asyncio.Task[None] | None = None

    # ---- lifecycle ----

    def start(self) -> None:
        """Start the worker on the running loop (idempotent)."""
        if self._worker is not None and not self._worker.done():
            return
        self._worker = asyncio.create_task(self._run(), name="notification-worker")

    async def stop(self) -> None:
        if self._worker is None:
            return
        self._worker.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._worker
        self._worker = None

    async def drain(self) -> None:
        """Wait until every queued task has been handled."""
        await self._queue.join()

    # ---- TaskNotifier ----

    def enqueue(self, task: Task) -> None:
        if not self._enabled:
            return
        self._queue.put_nowait(task)
        logger.debug("Notification queued task_id=%s", task.id)

    # ---- delivery ----

    async def deliver(self, task: Task) -> str:
        granted = await self._service.get_permission()
        if not granted:
            granted = await self._service.request_permission()
        if not granted:
            raise PermissionDenied("notification permission not granted")

        request = build_request(task, delay_seconds=self._delay_seconds)
        notification_id = await self._service.schedule(request)
        logger.info(
            "Notification scheduled id=%s task_id=%s delay=%.1fs",
            notification_id,
            task.id,
            self._delay_seconds,
        )
        return notification_id

    async def _run(self) -> None:
        while True:
            task = await self._queue.get()
            try:
                await self.deliver(task)
            except PermissionDenied:
                logger.info("Notifications not permitted; skipping task_id=%s", task.id)
            except Exception:
                logger.exception("Failed to schedule notification task_id=%s", task.id)
            finally:
                self._queue.task_done()

    # ---- listeners ----

    def attach_listeners(self) -> None:
        self._service.add_received_listener(self._on_received)
        self._service.add_response_listener(self._on_response)

    @staticmethod
    def _on_received(request: NotificationRequest) -> None:
        logger.info("Notification received task_id=%s", request.data.get("task_id"))

    @staticmethod
    def _on_response(request: NotificationRequest) -> None:
        # Extension point: open the task on tap.
        logger.info("Notification tapped task_id=%s", request.data.get("task_id"))
