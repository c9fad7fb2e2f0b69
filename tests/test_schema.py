"""Tests for record type descriptors and row materialization."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar

import pytest
from sql_records.exceptions import RecordMappingError
from sql_records.schema import Record, RecordSchema


class Person(Record):
    Name: str
    Age: int | None = None
    Kind: ClassVar[str] = "person"
    _secret: str = "hidden"


class Employee(Person):
    Title: str = ""


class NoColumns(Record):
    pass


@dataclass
class Invoice:
    Number: str
    Total: float = 0.0
    Id: int | None = None


@dataclass
class BaseRow:
    Id: int | None = None


@dataclass
class Tag(BaseRow):
    Label: str = ""
    Weight: int = field(default=1)


class Plain:
    Id: int | None
    Code: str
    Count: int

    def __init__(self) -> None:
        self.Id = None
        self.Code = ""
        self.Count = 0


class NeedsArgs:
    Code: str

    def __init__(self, code: str) -> None:
        self.Code = code


def test_pydantic_own_fields_exclude_id_classvar_and_private():
    schema = RecordSchema.of(Person)
    assert schema.name == "Person"
    assert schema.own_fields == ("Name", "Age")
    assert "Id" in schema.columns


def test_inherited_fields_are_not_own():
    schema = RecordSchema.of(Employee)
    assert schema.own_fields == ("Title",)
    assert {"Id", "Name", "Age", "Title"} <= schema.columns


def test_dataclass_declared_id_is_still_excluded():
    assert RecordSchema.of(Invoice).own_fields == ("Number", "Total")


def test_dataclass_inheriting_id():
    schema = RecordSchema.of(Tag)
    assert schema.own_fields == ("Label", "Weight")
    assert "Id" in schema.columns


def test_plain_class_fields():
    schema = RecordSchema.of(Plain)
    assert schema.kind == "plain"
    assert schema.own_fields == ("Code", "Count")


def test_schema_is_cached_per_type():
    assert RecordSchema.of(Person) is RecordSchema.of(Person)


def test_of_rejects_instances():
    with pytest.raises(TypeError):
        RecordSchema.of(Person(Name="x"))


def test_require_fields_names_the_type():
    with pytest.raises(RecordMappingError, match="NoColumns"):
        RecordSchema.of(NoColumns).require_fields("insert_record")


def test_values_binds_own_fields_only():
    person = Person(Id=3, Name="Ada", Age=36)
    assert RecordSchema.of(Person).values(person) == {"Name": "Ada", "Age": 36}


def test_materialize_pydantic_ignores_unknown_columns():
    row = {"Id": 7, "Name": "Ada", "Age": 36, "CreatedAt": "2024-01-01"}
    person = RecordSchema.of(Person).materialize(row)
    assert person == Person(Id=7, Name="Ada", Age=36)


def test_materialize_is_case_sensitive():
    row = {"Id": 7, "name": "ada", "Name": "Ada", "AGE": 99}
    person = RecordSchema.of(Person).materialize(row)
    assert person.Name == "Ada"
    assert person.Age is None


def test_materialize_dataclass():
    invoice = RecordSchema.of(Invoice).materialize({"Id": 1, "Number": "INV-1", "Total": 9.5, "Extra": 1})
    assert invoice == Invoice(Number="INV-1", Total=9.5, Id=1)


def test_materialize_plain_class():
    plain = RecordSchema.of(Plain).materialize({"Id": 2, "Code": "X", "Count": 4})
    assert (plain.Id, plain.Code, plain.Count) == (2, "X", 4)


def test_materialize_failure_raises_mapping_error():
    with pytest.raises(RecordMappingError) as exc_info:
        RecordSchema.of(Person).materialize({"Id": 1, "Age": 3})
    assert exc_info.value.entity_name == "Person"
    assert exc_info.value.__cause__ is not None


def test_materialize_plain_class_without_default_constructor():
    with pytest.raises(RecordMappingError):
        RecordSchema.of(NeedsArgs).materialize({"Code": "x"})
