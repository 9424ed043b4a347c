# src/school_agenda/errors.py

"""
Exception taxonomy.

User-initiated operations (task CRUD, manual backup/restore) raise these to the
caller; background loops catch them and log.
"""

from __future__ import annotations


class AgendaError(Exception):
    """Base class for all agenda errors."""


class StorageError(AgendaError):
    """The persisted key-value store failed."""


class StorageReadError(StorageError):
    pass


class StorageWriteError(StorageError):
    pass


class CorruptState(AgendaError):
    """Stored JSON could not be parsed into the expected shape."""


class InvalidBackupFormat(AgendaError):
    """A backup payload failed structural validation."""


class BackupNotFound(AgendaError):
    """No backup is available at the requested source."""


class PermissionDenied(AgendaError):
    """A platform permission (notifications, files) was refused."""


class NetworkError(AgendaError):
    """Remote backup storage could not be reached or answered with an error."""


class ValidationError(AgendaError, ValueError):
    """Input rejected before anything was persisted."""


class TaskNotFound(AgendaError, KeyError):
    def __init__(self, task_id: str) -> None:
        super().__init__(task_id)
        self.task_id = task_id

    def __str__(self) -> str:
        return f"task not found: {self.task_id}"
