# src/school_agenda/backup/background.py

"""
Unattended periodic backup.

Same export as a manual local backup, written into a dedicated directory,
without any user interaction. Failures only reach the log.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from .coordinator import BackupCoordinator

logger = logging.getLogger(__name__)


async def perform_background_backup(coordinator: BackupCoordinator, directory: str | Path) -> Path | None:
    try:
        path = await coordinator.export_to_directory(directory)
    except Exception:
        logger.exception("Background backup failed dir=%s", directory)
        return None
    logger.info("Background backup written to %s", path)
    return path


async def run_background_backup(
    coordinator: BackupCoordinator,
    *,
    directory: str | Path,
    interval_seconds: float = 3600.0,
) -> None:
    """
    Export now, then every interval_seconds.

    Runs are not serialized against each other or against foreground work.
    To stop the loop, cancel the task.
    """
    sleep_s = max(0.5, float(interval_seconds))

    while True:
        await perform_background_backup(coordinator, directory)
        await asyncio.sleep(sleep_s)
