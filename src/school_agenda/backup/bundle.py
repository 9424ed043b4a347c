# src/school_agenda/backup/bundle.py

"""
Backup bundle codec.

The bundle is a JSON array of task objects. Anything else (including the
older flat {storeKey: json-string} export) is rejected.
"""

from __future__ import annotations

import json
from collections.abc import Container, Iterable
from datetime import datetime

from ..errors import InvalidBackupFormat, ValidationError
from ..tasks.task_models import Task

FILE_SUFFIX = ".json"


def backup_file_name(prefix: str, now: datetime) -> str:
    """<prefix>-YYYY-MM-DD-HH-mm-ss.json (no colons, safe on every filesystem)."""
    return f"{prefix}-{now.strftime('%Y-%m-%d-%H-%M-%S')}{FILE_SUFFIX}"


def unique_file_name(name: str, taken: Container[str]) -> str:
    """
    Return name, or name with a -1, -2, ... counter before the suffix when
    it is already taken (two backups within the same second).
    """
    if name not in taken:
        return name
    stem = name.removesuffix(FILE_SUFFIX)
    counter = 1
    while f"{stem}-{counter}{FILE_SUFFIX}" in taken:
        counter += 1
    return f"{stem}-{counter}{FILE_SUFFIX}"


def encode_bundle(tasks: Iterable[Task]) -> str:
    return json.dumps([t.to_dict() for t in tasks], ensure_ascii=False, indent=2)


def parse_bundle(text: str) -> list[Task]:
    """
    Parse and strictly validate a bundle.

    Raises InvalidBackupFormat when the payload is not JSON, not an array,
    or any element is not task-shaped. Duplicate ids are rejected as well.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise InvalidBackupFormat(f"backup is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise InvalidBackupFormat(f"backup must be a JSON array, got {type(data).__name__}")

    tasks: list[Task] = []
    seen: set[str] = set()
    for index, item in enumerate(data):
        try:
            task = Task.from_dict(item)
        except ValidationError as e:
            raise InvalidBackupFormat(f"backup entry #{index} is invalid: {e}") from e
        if task.id in seen:
            raise InvalidBackupFormat(f"backup entry #{index} repeats id {task.id!r}")
        seen.add(task.id)
        tasks.append(task)
    return tasks
