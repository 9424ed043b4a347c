# src/school_agenda/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date as Date
from enum import StrEnum
from typing import Any

from ..errors import ValidationError

DATE_FORMAT = "%Y-%m-%d"


class TaskStatus(StrEnum):
    """
    Task lifecycle status.

    Advanced only by explicit user action, in a fixed cycle:
    pending -> in_progress -> completed -> pending
    """

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    def next(self) -> TaskStatus:
        order = _STATUS_CYCLE
        return order[(order.index(self) + 1) % len(order)]


_STATUS_CYCLE: tuple[TaskStatus, ...] = (
    TaskStatus.PENDING,
    TaskStatus.IN_PROGRESS,
    TaskStatus.COMPLETED,
)


class Urgency(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


def parse_date(raw: str) -> str:
    """Validate a YYYY-MM-DD string and return it unchanged."""
    if not isinstance(raw, str) or len(raw) != 10:
        raise ValidationError(f"date must be YYYY-MM-DD, got {raw!r}")
    try:
        Date.fromisoformat(raw)
    except ValueError as e:
        raise ValidationError(f"date must be YYYY-MM-DD, got {raw!r}") from e
    return raw


def format_date(d: Date) -> str:
    return d.strftime(DATE_FORMAT)


@dataclass(slots=True, frozen=True)
class Task:
    id: str
    name: str
    date: str
    status: TaskStatus = TaskStatus.PENDING
    urgency: Urgency = Urgency.MEDIUM
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "date": self.date,
            "status": self.status.value,
            "urgency": self.urgency.value,
        }

    @classmethod
    def from_dict(cls, raw: Any) -> Task:
        """
        Build a Task from its stored JSON object.

        Raises ValidationError for anything that is not task-shaped:
        missing/empty id, name, date or status, unknown status/urgency,
        or a malformed date.
        """
        if not isinstance(raw, dict):
            raise ValidationError(f"task must be an object, got {type(raw).__name__}")

        for key in ("id", "name", "date", "status"):
            value = raw.get(key)
            if not isinstance(value, str) or not value.strip():
                raise ValidationError(f"task field {key!r} must be a non-empty string")

        try:
            status = TaskStatus(raw["status"])
        except ValueError as e:
            raise ValidationError(f"unknown task status {raw['status']!r}") from e

        urgency_raw = raw.get("urgency")
        if urgency_raw is None:
            urgency = Urgency.MEDIUM
        else:
            try:
                urgency = Urgency(urgency_raw)
            except ValueError as e:
                raise ValidationError(f"unknown task urgency {urgency_raw!r}") from e

        description = raw.get("description") or ""
        if not isinstance(description, str):
            raise ValidationError("task field 'description' must be a string")

        return cls(
            id=raw["id"],
            name=raw["name"],
            date=parse_date(raw["date"]),
            status=status,
            urgency=urgency,
            description=description,
        )
