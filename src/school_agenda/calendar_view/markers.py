# src/school_agenda/calendar_view/markers.py

"""
Calendar marker derivation.

derive_markers() is a pure function of (tasks, selected date, today, accent
colour). The map is rebuilt from scratch on every call, never patched, so two
calls with the same inputs give the same output.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from typing import Any

from ..tasks.task_models import Task, TaskStatus, Urgency

TODAY_BACKGROUND = "#e8f0fe"
COMPLETED_DOT_COLOR = "#28a745"
URGENCY_DOT_COLORS: dict[Urgency, str] = {
    Urgency.LOW: "#17a2b8",
    Urgency.MEDIUM: "#ffc107",
    Urgency.HIGH: "#dc3545",
}


@dataclass(slots=True, frozen=True)
class DayStyle:
    container_background: str | None = None
    text_color: str | None = None
    text_bold: bool = False


@dataclass(slots=True, frozen=True)
class MarkerDescriptor:
    marked: bool = False
    dot_color: str | None = None
    selected: bool = False
    selected_color: str | None = None
    custom_style: DayStyle | None = None

    def to_dict(self) -> dict[str, Any]:
        """Calendar-widget shape (camelCase keys, unset keys omitted)."""
        out: dict[str, Any] = {}
        if self.marked:
            out["marked"] = True
        if self.dot_color:
            out["dotColor"] = self.dot_color
        if self.selected:
            out["selected"] = True
        if self.selected_color:
            out["selectedColor"] = self.selected_color
        if self.custom_style is not None:
            styles: dict[str, Any] = {}
            if self.custom_style.container_background:
                styles["container"] = {"backgroundColor": self.custom_style.container_background}
            text: dict[str, Any] = {}
            if self.custom_style.text_color:
                text["color"] = self.custom_style.text_color
            if self.custom_style.text_bold:
                text["fontWeight"] = "bold"
            if text:
                styles["text"] = text
            out["customStyles"] = styles
        return out


MarkerMap = dict[str, MarkerDescriptor]


def darken(color: str, factor: float = 0.7) -> str:
    """Scale each RGB channel of a #rrggbb colour by factor (0..1)."""
    raw = color.lstrip("#")
    if len(raw) == 3:
        raw = "".join(ch * 2 for ch in raw)
    if len(raw) != 6:
        raise ValueError(f"expected a #rrggbb colour, got {color!r}")
    factor = max(0.0, min(1.0, factor))
    channels = [int(raw[i : i + 2], 16) for i in (0, 2, 4)]
    return "#" + "".join(f"{int(c * factor):02x}" for c in channels)


def dot_color_for(task: Task) -> str:
    if task.status == TaskStatus.COMPLETED:
        return COMPLETED_DOT_COLOR
    return URGENCY_DOT_COLORS[task.urgency]


def derive_markers(
    tasks: Iterable[Task],
    selected_date: str,
    today: str,
    accent_color: str,
) -> MarkerMap:
    markers: MarkerMap = {}

    # Current day: always highlighted, tasks or not.
    today_style = DayStyle(
        container_background=TODAY_BACKGROUND,
        text_color=accent_color,
        text_bold=True,
    )
    markers[today] = MarkerDescriptor(custom_style=today_style)

    # Several tasks on one day: the last one decides the dot colour.
    for task in tasks:
        current = markers.get(task.date, MarkerDescriptor())
        markers[task.date] = replace(current, marked=True, dot_color=dot_color_for(task))

    current = markers.get(selected_date, MarkerDescriptor())
    if selected_date == today:
        selected_color = darken(accent_color)
    else:
        selected_color = accent_color
    markers[selected_date] = replace(current, selected=True, selected_color=selected_color)

    return markers


def markers_to_dict(markers: MarkerMap) -> dict[str, dict[str, Any]]:
    return {day: markers[day].to_dict() for day in sorted(markers)}
