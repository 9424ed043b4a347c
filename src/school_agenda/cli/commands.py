# src/school_agenda/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from ..backup.coordinator import BackupTarget
from ..calendar_view.markers import markers_to_dict
from ..core.state import AppState
from ..errors import AgendaError
from ..tasks.task_models import Task, Urgency

CommandHandler = Callable[[AppState, list[str]], Awaitable[str]]

logger = logging.getLogger(__name__)

# Commands usable before /login.
PUBLIC_COMMANDS = frozenset({"help", "h", "?", "login"})


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(self, state: AppState, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Agenda errors are turned into a reply; the app stays usable.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        if name not in PUBLIC_COMMANDS and not await state.session.is_logged_in():
            return "Please /login first."

        try:
            return await handler(state, args)
        except AgendaError as e:
            logger.info("Command /%s failed: %s", name, e)
            return f"Error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def _format_task(task: Task) -> str:
    line = f"[{task.id}] {task.name} ({task.status.value}, {task.urgency.value})"
    if task.description:
        line += f" - {task.description}"
    return line


async def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


async def cmd_login(state: AppState, args: list[str]) -> str:
    username = args[0] if args else ""
    await state.session.login(username, "")
    return "Logged in."


async def cmd_logout(state: AppState, args: list[str]) -> str:
    await state.session.logout()
    return "Logged out."


async def cmd_theme(state: AppState, args: list[str]) -> str:
    if not args:
        return f"Theme: {await state.session.get_theme()}"
    await state.session.set_theme(args[0].lower())
    return f"Theme set to {args[0].lower()}."


async def cmd_date(state: AppState, args: list[str]) -> str:
    """
    /date             -> show selected day
    /date today       -> select today
    /date YYYY-MM-DD  -> select a day
    """
    if args:
        day = state.calendar.today if args[0].lower() == "today" else args[0]
        await state.calendar.select_date(day)
    return f"Selected day: {state.calendar.selected_date}"


async def cmd_list(state: AppState, args: list[str]) -> str:
    day = state.calendar.selected_date
    tasks = state.tasks.list_for_date(day)
    if not tasks:
        return f"No activities on {day}."
    lines = [f"Activities on {day}:"]
    lines.extend(f"  {_format_task(t)}" for t in tasks)
    return "\n".join(lines)


async def cmd_add(state: AppState, args: list[str]) -> str:
    """
    /add <name...> [| description...]
    The task goes to the selected day.
    """
    text = " ".join(args)
    name, _, description = text.partition("|")
    task = await state.tasks.create(
        name=name.strip(),
        date=state.calendar.selected_date,
        description=description.strip(),
    )
    return f"Created {_format_task(task)} on {task.date}."


async def cmd_rename(state: AppState, args: list[str]) -> str:
    if len(args) < 2:
        return "Usage: /rename <id> <new name>"
    task = await state.tasks.update(args[0], name=" ".join(args[1:]))
    return f"Updated {_format_task(task)}."


async def cmd_desc(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /desc <id> [description]"
    task = await state.tasks.update(args[0], description=" ".join(args[1:]))
    return f"Updated {_format_task(task)}."


async def cmd_urgency(state: AppState, args: list[str]) -> str:
    levels = "|".join(u.value for u in Urgency)
    if len(args) != 2:
        return f"Usage: /urgency <id> {levels}"
    task = await state.tasks.update(args[0], urgency=args[1].lower())
    return f"Updated {_format_task(task)}."


async def cmd_next(state: AppState, args: list[str]) -> str:
    if len(args) != 1:
        return "Usage: /next <id>"
    task = await state.tasks.advance_status(args[0])
    return f"{task.name} is now {task.status.value}."


async def cmd_delete(state: AppState, args: list[str]) -> str:
    """
    /del <id>          -> ask for confirmation
    /del <id> confirm  -> delete
    """
    if not args:
        return "Usage: /del <id> [confirm]"
    task = state.tasks.get(args[0])
    if len(args) < 2 or args[1].lower() != "confirm":
        return f"Delete '{task.name}'? Repeat with /del {task.id} confirm"
    await state.tasks.delete(task.id)
    return f"Deleted '{task.name}'."


async def cmd_calendar(state: AppState, args: list[str]) -> str:
    markers = markers_to_dict(state.calendar.markers)
    lines = [f"Calendar (today {state.calendar.today}, selected {state.calendar.selected_date}):"]
    for day, marker in markers.items():
        flags = []
        if marker.get("customStyles"):
            flags.append("today")
        if marker.get("selected"):
            flags.append("selected")
        if marker.get("marked"):
            flags.append(f"dot {marker.get('dotColor')}")
        lines.append(f"  {day}: {', '.join(flags)}")
    return "\n".join(lines)


def _target(args: list[str]) -> BackupTarget | None:
    if not args:
        return BackupTarget.LOCAL
    try:
        return BackupTarget(args[0].lower())
    except ValueError:
        return None


async def cmd_backup(state: AppState, args: list[str]) -> str:
    target = _target(args)
    if target is None:
        return "Usage: /backup local|remote"
    result = await state.backups.create_backup(target)
    return f"Backup created: {result.location} ({result.task_count} activities)."


async def cmd_restore(state: AppState, args: list[str]) -> str:
    target = _target(args)
    if target is None:
        return "Usage: /restore local|remote"
    result = await state.backups.restore_backup(target)
    if result is None:
        return "Restore cancelled."
    return f"Restored {result.task_count} activities from {result.file_name}."


async def cmd_sync(state: AppState, args: list[str]) -> str:
    """Foreground hook: pick up external restores and a new calendar day."""
    reloaded = await state.tasks.on_foreground()
    rolled = await state.calendar.refresh_today()
    parts = ["Tasks reloaded." if reloaded else "Tasks up to date."]
    if rolled:
        parts.append(f"Today is now {state.calendar.today}.")
    return " ".join(parts)


async def cmd_status(state: AppState, args: list[str]) -> str:
    counts = ", ".join(f"{c.key}={len(c.items)}" for c in state.records.all())
    return (
        "Status:\n"
        f"  Activities: {len(state.tasks.tasks)}\n"
        f"  Records: {counts}\n"
        f"  Remote backups: {'ON' if state.backups.remote_enabled else 'OFF'}\n"
        f"  Today: {state.calendar.today}"
    )


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("login", cmd_login, help_text="Log in: /login [user].")
registry.register("logout", cmd_logout, help_text="Log out.")
registry.register("theme", cmd_theme, help_text="Show or set theme: /theme light|dark.")
registry.register("date", cmd_date, help_text="Select a day: /date YYYY-MM-DD | today.")
registry.register("list", cmd_list, help_text="List activities of the selected day.", aliases=["ls"])
registry.register("add", cmd_add, help_text="Add an activity: /add name [| description].")
registry.register("rename", cmd_rename, help_text="Rename: /rename <id> <name>.")
registry.register("desc", cmd_desc, help_text="Set description: /desc <id> <text>.")
registry.register("urgency", cmd_urgency, help_text="Set urgency: /urgency <id> low|medium|high.")
registry.register("next", cmd_next, help_text="Advance status: /next <id>.")
registry.register("del", cmd_delete, help_text="Delete: /del <id> confirm.", aliases=["delete"])
registry.register("cal", cmd_calendar, help_text="Show calendar markers.")
registry.register("backup", cmd_backup, help_text="Create a backup: /backup local|remote.")
registry.register("restore", cmd_restore, help_text="Restore a backup: /restore local|remote.")
registry.register("sync", cmd_sync, help_text="Check for external restores and a new day.")
registry.register("status", cmd_status, help_text="Show counts and settings.")
