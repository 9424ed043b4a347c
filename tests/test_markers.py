# tests/test_markers.py

from __future__ import annotations

import json
from datetime import date

import pytest

from school_agenda.calendar_view.markers import (
    COMPLETED_DOT_COLOR,
    TODAY_BACKGROUND,
    URGENCY_DOT_COLORS,
    DayStyle,
    darken,
    derive_markers,
    markers_to_dict,
)
from school_agenda.calendar_view.view import CalendarView
from school_agenda.core.events import MARKERS_CHANGED
from school_agenda.tasks.task_models import Task, TaskStatus, Urgency
from school_agenda.tasks.task_repository import TaskRepository

from .fakes import MemoryStore

ACCENT = "#6c757d"
TODAY = "2024-05-10"


def _task(task_id: str, day: str, **kw) -> Task:
    return Task(id=task_id, name=f"task {task_id}", date=day, **kw)


def test_derivation_is_referentially_transparent() -> None:
    tasks = [
        _task("1", "2024-05-10", urgency=Urgency.HIGH),
        _task("2", "2024-05-12", status=TaskStatus.COMPLETED),
        _task("3", "2024-05-12", urgency=Urgency.LOW),
    ]
    first = derive_markers(tasks, "2024-05-12", TODAY, ACCENT)
    second = derive_markers(tasks, "2024-05-12", TODAY, ACCENT)

    assert first == second
    assert json.dumps(markers_to_dict(first)) == json.dumps(markers_to_dict(second))


def test_today_is_marked_without_any_tasks() -> None:
    markers = derive_markers([], "2024-05-20", TODAY, ACCENT)

    today = markers[TODAY]
    assert today.custom_style == DayStyle(container_background=TODAY_BACKGROUND, text_color=ACCENT, text_bold=True)
    assert today.selected is False
    assert today.marked is False

    selected = markers["2024-05-20"]
    assert selected.selected is True
    assert selected.selected_color == ACCENT
    assert selected.custom_style is None


def test_selected_today_merges_styles_and_keeps_mark() -> None:
    markers = derive_markers([_task("1", TODAY)], TODAY, TODAY, ACCENT)

    entry = markers[TODAY]
    assert entry.marked is True
    assert entry.dot_color == URGENCY_DOT_COLORS[Urgency.MEDIUM]
    assert entry.selected is True
    assert entry.selected_color == darken(ACCENT)
    assert entry.selected_color != ACCENT
    assert entry.custom_style is not None
    assert entry.custom_style.container_background == TODAY_BACKGROUND

    as_dict = markers_to_dict(markers)[TODAY]
    assert as_dict["customStyles"]["container"] == {"backgroundColor": TODAY_BACKGROUND}
    assert as_dict["selected"] is True and as_dict["marked"] is True


def test_dot_colour_comes_from_status_then_urgency() -> None:
    tasks = [
        _task("1", "2024-05-01", urgency=Urgency.HIGH, status=TaskStatus.COMPLETED),
        _task("2", "2024-05-02", urgency=Urgency.HIGH, status=TaskStatus.IN_PROGRESS),
        _task("3", "2024-05-03", urgency=Urgency.LOW),
    ]
    markers = derive_markers(tasks, TODAY, TODAY, ACCENT)

    assert markers["2024-05-01"].dot_color == COMPLETED_DOT_COLOR
    assert markers["2024-05-02"].dot_color == URGENCY_DOT_COLORS[Urgency.HIGH]
    assert markers["2024-05-03"].dot_color == URGENCY_DOT_COLORS[Urgency.LOW]


def test_last_task_of_a_day_wins_the_dot() -> None:
    tasks = [
        _task("1", "2024-05-02", urgency=Urgency.HIGH),
        _task("2", "2024-05-02", urgency=Urgency.LOW),
    ]
    markers = derive_markers(tasks, TODAY, TODAY, ACCENT)
    assert markers["2024-05-02"].dot_color == URGENCY_DOT_COLORS[Urgency.LOW]


def test_selected_day_with_tasks_keeps_its_dot() -> None:
    markers = derive_markers([_task("1", "2024-05-02", urgency=Urgency.HIGH)], "2024-05-02", TODAY, ACCENT)
    entry = markers["2024-05-02"]
    assert entry.selected and entry.marked
    assert entry.dot_color == URGENCY_DOT_COLORS[Urgency.HIGH]
    assert entry.selected_color == ACCENT


def test_darken() -> None:
    assert darken("#ffffff", 0.5) == "#7f7f7f"
    assert darken("#fff", 1.0) == "#ffffff"
    with pytest.raises(ValueError):
        darken("blue")


@pytest.mark.asyncio
async def test_calendar_view_follows_repository_and_selection(bus) -> None:
    view = CalendarView(bus, accent_color=ACCENT, today=lambda: date(2024, 5, 10))
    repo = TaskRepository(MemoryStore(), bus)
    published: list[str] = []
    bus.subscribe(MARKERS_CHANGED, lambda *, selected_date, **_: published.append(selected_date))

    assert view.selected_date == TODAY
    assert not view.markers[TODAY].marked

    task = await repo.create(name="Exam", date=TODAY)
    assert view.markers[TODAY].marked
    assert view.tasks_for_selected() == [task]

    await view.select_date("2024-05-11")
    assert view.markers["2024-05-11"].selected
    assert not view.markers[TODAY].selected
    assert view.tasks_for_selected() == []

    await repo.delete(task.id)
    assert not view.markers[TODAY].marked

    assert published == [TODAY, "2024-05-11", "2024-05-11"]


@pytest.mark.asyncio
async def test_calendar_view_rolls_over_to_a_new_day(bus) -> None:
    current = [date(2024, 5, 10)]
    view = CalendarView(bus, accent_color=ACCENT, today=lambda: current[0])

    assert await view.refresh_today() is False
    current[0] = date(2024, 5, 11)
    assert await view.refresh_today() is True
    assert view.today == "2024-05-11"
    assert view.markers["2024-05-11"].custom_style is not None


@pytest.mark.asyncio
async def test_rollover_moves_a_selection_left_on_the_old_day(bus) -> None:
    current = [date(2024, 5, 10)]
    view = CalendarView(bus, accent_color=ACCENT, today=lambda: current[0])

    current[0] = date(2024, 5, 11)
    await view.refresh_today()

    assert view.selected_date == "2024-05-11"
    assert view.markers["2024-05-11"].selected
    assert view.markers["2024-05-11"].selected_color == darken(ACCENT)
    assert "2024-05-10" not in view.markers


@pytest.mark.asyncio
async def test_rollover_keeps_a_deliberate_selection(bus) -> None:
    current = [date(2024, 5, 10)]
    view = CalendarView(bus, accent_color=ACCENT, today=lambda: current[0])
    await view.select_date("2024-05-20")

    current[0] = date(2024, 5, 11)
    await view.refresh_today()

    assert view.selected_date == "2024-05-20"
