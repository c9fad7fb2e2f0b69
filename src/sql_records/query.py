"""SQL text synthesis for the record gateway.

Every function here is pure: it takes a table name (and ids or field names)
and returns one SQL statement. Record data is never interpolated; it is
referenced through named placeholders (``@Name`` by default) and bound by the
caller. Table names and ids *are* interpolated, so both are checked first: a
table name must be a plain identifier and an id must be an integer.

>>> insert("Users", ["Name", "Age"])
'INSERT INTO Users (Name, Age) VALUES (@Name, @Age)'
>>> update("Users", ["Name", "Age"]) + "5"
'UPDATE Users SET Name = @Name,Age = @Age WHERE Id = 5'
>>> select_many("Users", [3, 7, 9])
'SELECT * FROM Users WHERE Id IN (3,7,9)'
"""

from __future__ import annotations

import operator
import re
from collections.abc import Iterable, Sequence

from sql_records.exceptions import (
    EmptyIdSetError,
    InvalidIdentifierError,
    InvalidIdError,
    RecordMappingError,
)
from sql_records.schema import ID_FIELD, RecordSchema

# Optional schema qualifier, then the table itself; 128 chars per part.
# Unicode letters are allowed, as SQLite accepts them in bare identifiers.
_IDENTIFIER_RE = re.compile(r"[^\W\d]\w{0,127}(?:\.[^\W\d]\w{0,127})?")

# Named-parameter prefixes understood by SQLite (all three) and SQLAlchemy ``text()`` (":").
MARKERS = frozenset({"@", ":", "$"})


def check_table_name(table: str) -> str:
    """Return *table* unchanged if it is a safe identifier, else raise."""
    if not isinstance(table, str) or not _IDENTIFIER_RE.fullmatch(table):
        raise InvalidIdentifierError(
            entity_name=str(table)[:64],
            operation="build_query",
            detail=(
                f"Table name {table!r} is not a plain SQL identifier. "
                "Use letters, digits and underscores, optionally qualified as 'schema.table'."
            ),
        )
    return table


def coerce_id(value: object, *, table: str = "?") -> int:
    """Return *value* as an ``int``, rejecting ``bool`` and anything without ``__index__``."""
    if isinstance(value, bool):
        raise InvalidIdError(entity_name=table, operation="build_query", detail=f"Id {value!r} is not an integer.")
    try:
        return operator.index(value)
    except TypeError as exc:
        raise InvalidIdError(
            entity_name=table,
            operation="build_query",
            detail=f"Id {value!r} is not an integer.",
            cause=exc,
        ) from exc


def _id_list(table: str, ids: Iterable[object]) -> str:
    literals = [str(coerce_id(value, table=table)) for value in ids]
    if not literals:
        raise EmptyIdSetError(
            entity_name=table,
            operation="build_query",
            detail="At least one id is required for an 'IN (...)' clause.",
        )
    return ",".join(literals)


def _field_list(table: str, fields: Sequence[str], marker: str) -> Sequence[str]:
    if marker not in MARKERS:
        raise ValueError(f"Unsupported placeholder marker {marker!r}; expected one of {sorted(MARKERS)}")
    if not fields:
        raise RecordMappingError(
            entity_name=table,
            operation="build_query",
            detail="No fields to write; the record type declares no own columns.",
        )
    return fields


def field_names(record_type: type) -> tuple[str, ...]:
    """Own public field names of *record_type*, in declaration order (``Id`` excluded)."""
    return RecordSchema.of(record_type).own_fields


def select_all(table: str) -> str:
    return f"SELECT * FROM {check_table_name(table)}"


def select_one(table: str, id: int) -> str:
    check_table_name(table)
    return f"SELECT * FROM {table} WHERE {ID_FIELD} = {coerce_id(id, table=table)}"


def select_many(table: str, ids: Iterable[int]) -> str:
    check_table_name(table)
    return f"SELECT * FROM {table} WHERE {ID_FIELD} IN ({_id_list(table, ids)})"


def delete(table: str, id: int) -> str:
    check_table_name(table)
    return f"DELETE FROM {table} WHERE {ID_FIELD} = {coerce_id(id, table=table)}"


def delete_many(table: str, ids: Iterable[int]) -> str:
    check_table_name(table)
    return f"DELETE FROM {table} WHERE {ID_FIELD} IN ({_id_list(table, ids)})"


def insert(table: str, fields: Sequence[str], *, marker: str = "@") -> str:
    """Build ``INSERT INTO t (a, b) VALUES (@a, @b)``; columns and placeholders share one order."""
    check_table_name(table)
    names = _field_list(table, fields, marker)
    columns = ", ".join(names)
    placeholders = ", ".join(f"{marker}{name}" for name in names)
    return f"INSERT INTO {table} ({columns}) VALUES ({placeholders})"


def update(table: str, fields: Sequence[str], *, marker: str = "@") -> str:
    """Build an UPDATE that ends in a dangling ``WHERE Id = ``.

    The caller appends the decimal id before executing. Prefer
    :func:`update_by_id`, which binds the id as a parameter instead.
    """
    check_table_name(table)
    names = _field_list(table, fields, marker)
    assignments = ",".join(f"{name} = {marker}{name}" for name in names)
    return f"UPDATE {table} SET {assignments} WHERE {ID_FIELD} = "


def update_by_id(table: str, fields: Sequence[str], *, marker: str = "@") -> str:
    """Build a complete UPDATE whose row is selected by the ``Id`` parameter."""
    return f"{update(table, fields, marker=marker)}{marker}{ID_FIELD}"


def last(table: str) -> str:
    return f"SELECT * FROM {check_table_name(table)} ORDER BY {ID_FIELD} DESC LIMIT 1"
