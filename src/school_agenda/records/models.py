# src/school_agenda/records/models.py

from __future__ import annotations

from dataclasses import MISSING, dataclass, field, fields
from typing import Any, ClassVar, TypeVar

from ..errors import ValidationError

R = TypeVar("R", bound="Record")


def _json_key(f: Any) -> str:
    return f.metadata.get("json", f.name)


@dataclass(slots=True, frozen=True)
class Record:
    """
    Base for management records stored as JSON arrays.

    Field metadata "json" names the stored key (the stored format uses the
    original camelCase names). All str fields without a default are required
    and must be non-empty.
    """

    id: str

    def to_dict(self) -> dict[str, Any]:
        return {_json_key(f): getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls: type[R], raw: Any) -> R:
        if not isinstance(raw, dict):
            raise ValidationError(f"{cls.__name__} must be an object")
        values: dict[str, Any] = {}
        for f in fields(cls):
            key = _json_key(f)
            if key in raw:
                values[f.name] = raw[key]
            elif f.default is MISSING:
                raise ValidationError(f"{cls.__name__} is missing {key!r}")
        record = cls(**values)
        record.validate()
        return record

    @classmethod
    def editable_fields(cls) -> set[str]:
        return {f.name for f in fields(cls) if f.name != "id"}

    def validate(self) -> None:
        for f in fields(self):
            if f.default is not MISSING:
                continue
            value = getattr(self, f.name)
            if isinstance(value, str) and not value.strip():
                raise ValidationError(f"{type(self).__name__}.{f.name} is required")


@dataclass(slots=True, frozen=True)
class Docente(Record):
    nombre: str
    apellido: str
    email: str
    numero_empleado: str = field(metadata={"json": "numeroEmpleado"})

    def validate(self) -> None:
        Record.validate(self)
        if "@" not in self.email:
            raise ValidationError(f"invalid email {self.email!r}")


@dataclass(slots=True, frozen=True)
class Materia(Record):
    nombre: str
    siglas: str


@dataclass(slots=True, frozen=True)
class Grupo(Record):
    nombre: str
    docente_id: str = field(metadata={"json": "docenteId"})


@dataclass(slots=True, frozen=True)
class Directivo(Record):
    ROLES: ClassVar[tuple[str, ...]] = ("Director", "Subdirector Académico")

    nombre: str
    rol: str
    genero_femenino: bool = field(default=False, metadata={"json": "generoFemenino"})

    def validate(self) -> None:
        Record.validate(self)
        if self.rol not in self.ROLES:
            raise ValidationError(f"unknown rol {self.rol!r}")


@dataclass(slots=True, frozen=True)
class Horario(Record):
    dia: str
    hora_inicio: str = field(metadata={"json": "horaInicio"})
    hora_fin: str = field(metadata={"json": "horaFin"})
    materia_id: str = field(metadata={"json": "materiaId"})
    docente_id: str = field(metadata={"json": "docenteId"})
    salon_id: str = field(metadata={"json": "salonId"})

    def validate(self) -> None:
        Record.validate(self)
        if self.hora_fin <= self.hora_inicio:
            raise ValidationError("horaFin must be later than horaInicio")
