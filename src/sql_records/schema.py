"""Record type descriptors: which attributes of a type map to which columns.

A record type is any class whose public annotated attributes match table
columns by exact, case-sensitive name. Pydantic models, dataclasses and plain
annotated classes are all accepted. The descriptor for a type is computed once
and cached, since the annotations of a class do not change after definition.
"""

from __future__ import annotations

import dataclasses
import inspect
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, get_origin

from pydantic import BaseModel, ValidationError

from sql_records.exceptions import RecordMappingError

logger = logging.getLogger(__name__)

#: Name of the autoincrement primary key column every mapped table carries.
ID_FIELD = "Id"

# String annotations (``from __future__ import annotations``) are not evaluated.
_CLASSVAR_RE = re.compile(r"^(?:\w+\.)*ClassVar\b")


class Record(BaseModel):
    """Base class for mapped records.

    ``Id`` lives here so that subclasses only declare their own columns; it is
    filled in when a record is read back and ignored when a record is written.
    Columns the record does not declare are ignored on read.
    """

    Id: int | None = None

    model_config = {"extra": "ignore"}


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return bool(_CLASSVAR_RE.match(annotation.strip()))
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def _declared_names(cls: type) -> list[str]:
    """Public, non-ClassVar names annotated directly on *cls*, in declaration order."""
    annotations = inspect.get_annotations(cls)
    return [name for name, ann in annotations.items() if not name.startswith("_") and not _is_classvar(ann)]


def _kind(cls: type) -> str:
    if isinstance(cls, type) and issubclass(cls, BaseModel):
        return "pydantic"
    if dataclasses.is_dataclass(cls):
        return "dataclass"
    return "plain"


def _mappable_names(cls: type, kind: str) -> frozenset[str]:
    """Every attribute a column may be written to, inherited ones included."""
    if kind == "pydantic":
        return frozenset(cls.model_fields)
    if kind == "dataclass":
        return frozenset(f.name for f in dataclasses.fields(cls))
    names: set[str] = set()
    for klass in cls.__mro__:
        if klass is object:
            continue
        names.update(_declared_names(klass))
    return frozenset(names)


@dataclass(frozen=True)
class RecordSchema:
    """Column mapping for one record type.

    Attributes:
        record_type: The mapped class.
        name: The class name, used as the default table name.
        own_fields: Columns written by INSERT/UPDATE, in declaration order.
            Excludes inherited attributes and ``Id``.
        columns: Every attribute a result column may populate.
    """

    record_type: type
    name: str
    own_fields: tuple[str, ...]
    columns: frozenset[str]
    kind: str

    _cache: ClassVar[dict[type, RecordSchema]] = {}

    @classmethod
    def of(cls, record_type: type) -> RecordSchema:
        """Return the (cached) descriptor for *record_type*."""
        if not isinstance(record_type, type):
            raise TypeError(f"Expected a record class, got {type(record_type).__name__}")
        cached = cls._cache.get(record_type)
        if cached is not None:
            return cached

        kind = _kind(record_type)
        columns = _mappable_names(record_type, kind)
        own = tuple(name for name in _declared_names(record_type) if name != ID_FIELD and name in columns)
        schema = cls(
            record_type=record_type,
            name=record_type.__name__,
            own_fields=own,
            columns=columns,
            kind=kind,
        )
        cls._cache[record_type] = schema
        logger.debug("Mapped %s (%s): own fields %s", schema.name, kind, list(own))
        return schema

    def require_fields(self, operation: str) -> tuple[str, ...]:
        """Return ``own_fields``, failing if there is nothing to write."""
        if not self.own_fields:
            raise RecordMappingError(
                entity_name=self.name,
                operation=operation,
                detail=(
                    f"Record type '{self.name}' declares no own public fields besides '{ID_FIELD}'; "
                    "cannot build a column list."
                ),
            )
        return self.own_fields

    def values(self, record: Any) -> dict[str, Any]:
        """Named parameter bindings for *record*'s own fields."""
        return {name: getattr(record, name) for name in self.own_fields}

    def materialize(self, row: Mapping[str, Any]) -> Any:
        """Build a record from a result row, matching columns to attributes by exact name."""
        data = {key: value for key, value in row.items() if key in self.columns}
        try:
            if self.kind == "pydantic":
                return self.record_type.model_validate(data)
            if self.kind == "dataclass":
                init_names = {f.name for f in dataclasses.fields(self.record_type) if f.init}
                record = self.record_type(**{k: v for k, v in data.items() if k in init_names})
                for key, value in data.items():
                    if key not in init_names:
                        setattr(record, key, value)
                return record
            record = self.record_type()
            for key, value in data.items():
                setattr(record, key, value)
            return record
        except (ValidationError, TypeError, AttributeError) as exc:
            logger.error("Cannot materialize %s from row: %s", self.name, type(exc).__name__)
            raise RecordMappingError(
                entity_name=self.name,
                operation="materialize",
                detail=f"Result row could not be mapped onto '{self.name}'.",
                cause=exc,
            ) from exc
