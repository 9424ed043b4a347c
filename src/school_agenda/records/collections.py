# src/school_agenda/records/collections.py

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Generic

from ..core.ports import KeyValueRepo
from ..errors import CorruptState, ValidationError
from ..storage.kv_store import KEY_DIRECTIVOS, KEY_DOCENTES, KEY_GRUPOS, KEY_HORARIOS, KEY_MATERIAS
from .models import Directivo, Docente, Grupo, Horario, Materia, R

logger = logging.getLogger(__name__)


class RecordCollection(Generic[R]):
    """
    CRUD over one JSON-array slot (docentes, materias, ...).

    Same write-through policy as the task repository: every mutation is
    persisted before returning; a write failure propagates without rolling
    back the in-memory change.
    """

    def __init__(
        self,
        store: KeyValueRepo,
        key: str,
        record_type: type[R],
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._key = key
        self._type = record_type
        self._clock = clock
        self._items: list[R] = []
        self._last_id = 0

    @property
    def key(self) -> str:
        return self._key

    @property
    def items(self) -> tuple[R, ...]:
        return tuple(self._items)

    def get_by_id(self, record_id: str) -> R | None:
        for item in self._items:
            if item.id == record_id:
                return item
        return None

    async def load(self) -> list[R]:
        raw = await self._store.get_item(self._key)
        self._items = []
        if raw is None:
            return []
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise CorruptState(f"{self._key} slot is not an array")
            self._items = [self._type.from_dict(item) for item in data]
        except (ValueError, CorruptState) as e:
            logger.warning("Stored %s are corrupt, starting empty: %s", self._key, e)
            self._items = []
        return list(self._items)

    async def _persist(self) -> None:
        payload = json.dumps([r.to_dict() for r in self._items], ensure_ascii=False)
        await self._store.set_item(self._key, payload)

    def _new_id(self) -> str:
        candidate = max(int(self._clock() * 1000), self._last_id + 1)
        existing = {r.id for r in self._items}
        while str(candidate) in existing:
            candidate += 1
        self._last_id = candidate
        return str(candidate)

    async def add(self, **values: Any) -> R:
        if "id" in values:
            raise ValidationError("id is assigned by the collection")
        try:
            record = self._type(id=self._new_id(), **values)
        except TypeError as e:
            raise ValidationError(f"invalid {self._type.__name__}: {e}") from e
        record.validate()
        self._items.append(record)
        logger.info("%s added id=%s", self._type.__name__, record.id)
        await self._persist()
        return record

    async def update(self, record_id: str, **patch: Any) -> R:
        unknown = set(patch) - self._type.editable_fields()
        if unknown:
            raise ValidationError(f"fields cannot be edited: {', '.join(sorted(unknown))}")
        for idx, item in enumerate(self._items):
            if item.id == record_id:
                updated = replace(item, **patch)
                updated.validate()
                self._items[idx] = updated
                await self._persist()
                return updated
        raise KeyError(record_id)

    async def delete(self, record_id: str) -> bool:
        before = len(self._items)
        self._items = [r for r in self._items if r.id != record_id]
        if len(self._items) == before:
            return False
        logger.info("%s deleted id=%s", self._type.__name__, record_id)
        await self._persist()
        return True


class SchoolRecords:
    """The management collections, loaded together at start-up."""

    def __init__(self, store: KeyValueRepo) -> None:
        self.docentes: RecordCollection[Docente] = RecordCollection(store, KEY_DOCENTES, Docente)
        self.materias: RecordCollection[Materia] = RecordCollection(store, KEY_MATERIAS, Materia)
        self.grupos: RecordCollection[Grupo] = RecordCollection(store, KEY_GRUPOS, Grupo)
        self.directivos: RecordCollection[Directivo] = RecordCollection(store, KEY_DIRECTIVOS, Directivo)
        self.horarios: RecordCollection[Horario] = RecordCollection(store, KEY_HORARIOS, Horario)

    def all(self) -> list[RecordCollection[Any]]:
        return [self.docentes, self.materias, self.grupos, self.directivos, self.horarios]

    async def load_all(self) -> None:
        for collection in self.all():
            await collection.load()
