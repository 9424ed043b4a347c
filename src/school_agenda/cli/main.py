# src/school_agenda/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, starts the background loops and runs
the console until /exit or Ctrl+C.
"""

from __future__ import annotations

import asyncio
import logging

from ..config import get_settings
from ..logging_setup import setup_logging
from .bootstrap import create_initial_state, shutdown_state, start_state
from .console import ConsoleFilePicker, ConsoleFileSharer, run_console_loop

logger = logging.getLogger(__name__)


async def _run(settings) -> None:
    state = create_initial_state(
        settings=settings,
        sharer=ConsoleFileSharer(),
        picker=ConsoleFilePicker(),
    )
    await start_state(state)
    try:
        await run_console_loop(state)
    finally:
        await shutdown_state(state)


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)
    try:
        asyncio.run(_run(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted.")
    logger.info("Bye.")


if __name__ == "__main__":
    main()
