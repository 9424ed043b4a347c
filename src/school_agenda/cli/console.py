# src/school_agenda/cli/console.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from pathlib import Path

from ..core.events import MARKERS_CHANGED
from ..core.state import AppState
from .commands import registry as command_registry

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


class ConsoleFileSharer:
    """FileSharer for the console: there is no share sheet, just show the path."""

    async def share(self, path: Path, *, mime_type: str = "application/json") -> None:
        _print_ts(f"[BACKUP] File ready to share: {path}")


class ConsoleFilePicker:
    """FilePicker for the console: asks for a path; empty input cancels."""

    async def pick(self, *, mime_type: str = "application/json") -> Path | None:
        raw = (await asyncio.to_thread(input, "Backup file path (empty to cancel): ")).strip()
        if not raw:
            return None
        return Path(raw).expanduser()


async def run_console_loop(state: AppState) -> None:
    logger.info("Console started.")
    _print_ts("[CONSOLE] Use /login to start, /help for commands, /exit to quit.\n")

    def _on_markers(*, markers, selected_date, **_) -> None:
        marked = sum(1 for m in markers.values() if m.marked)
        logger.debug("Calendar refreshed selected=%s marked_days=%d", selected_date, marked)

    unsubscribe = state.bus.subscribe(MARKERS_CHANGED, _on_markers)
    try:
        while True:
            try:
                user_input = (await asyncio.to_thread(input, "agenda> ")).strip()
            except EOFError:
                logger.info("Console EOF received, exiting.")
                break
            except KeyboardInterrupt:
                logger.info("Console KeyboardInterrupt, exiting.")
                print()
                break

            if not user_input:
                continue

            if user_input.lower() in ("/exit", "/quit"):
                logger.info("Console exit command received.")
                break

            try:
                reply = await command_registry.handle(state, user_input)
            except Exception:
                logger.exception("Command failed: %s", user_input)
                reply = "Something went wrong; see the log for details."

            if reply is None:
                reply = "Commands start with '/'. Use /help to list them."
            _print_ts(reply)
    finally:
        unsubscribe()
