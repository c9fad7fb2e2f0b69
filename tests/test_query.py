"""Tests for SQL text synthesis."""

from __future__ import annotations

import re
import sqlite3

import pytest
from sql_records import query
from sql_records.exceptions import (
    EmptyIdSetError,
    InvalidIdentifierError,
    InvalidIdError,
    QueryError,
    RecordMappingError,
)
from sql_records.schema import Record


class Users(Record):
    Name: str
    Age: int


class Empty(Record):
    pass


def test_select_all():
    assert query.select_all("Users") == "SELECT * FROM Users"


def test_select_one_interpolates_integer_literal():
    assert query.select_one("Users", 5) == "SELECT * FROM Users WHERE Id = 5"


def test_select_many_preserves_order_without_whitespace():
    assert query.select_many("Users", [3, 7, 9]) == "SELECT * FROM Users WHERE Id IN (3,7,9)"


def test_select_many_accepts_any_iterable():
    assert query.select_many("Users", (i for i in [9, 3])) == "SELECT * FROM Users WHERE Id IN (9,3)"


def test_delete_and_delete_many():
    assert query.delete("Users", 5) == "DELETE FROM Users WHERE Id = 5"
    assert query.delete_many("Users", [3, 7, 9]) == "DELETE FROM Users WHERE Id IN (3,7,9)"


def test_last():
    assert query.last("Users") == "SELECT * FROM Users ORDER BY Id DESC LIMIT 1"


def test_insert_scenario():
    assert query.insert("Users", ["Name", "Age"]) == "INSERT INTO Users (Name, Age) VALUES (@Name, @Age)"


def test_update_scenario_leaves_dangling_where():
    sql = query.update("Users", ["Name", "Age"])
    assert sql == "UPDATE Users SET Name = @Name,Age = @Age WHERE Id = "
    assert sql + "5" == "UPDATE Users SET Name = @Name,Age = @Age WHERE Id = 5"


def test_update_by_id_binds_the_id():
    assert query.update_by_id("Users", ["Name", "Age"]) == "UPDATE Users SET Name = @Name,Age = @Age WHERE Id = @Id"
    assert query.update_by_id("Users", ["Name"], marker=":") == "UPDATE Users SET Name = :Name WHERE Id = :Id"


@pytest.mark.parametrize("fields", [["A"], ["A", "B"], ["Zeta", "alpha", "Mid", "x1"]])
def test_insert_columns_and_placeholders_line_up(fields):
    sql = query.insert("T", fields)
    match = re.fullmatch(r"INSERT INTO T \((.*)\) VALUES \((.*)\)", sql)
    assert match is not None
    columns = match.group(1).split(", ")
    placeholders = match.group(2).split(", ")
    assert columns == fields
    assert placeholders == [f"@{name}" for name in fields]


@pytest.mark.parametrize("fields", [["A"], ["A", "B", "C"]])
def test_update_has_one_assignment_per_field(fields):
    sql = query.update("T", fields)
    assignments = sql[len("UPDATE T SET ") : -len(" WHERE Id = ")].split(",")
    assert assignments == [f"{name} = @{name}" for name in fields]
    assert sql.endswith("WHERE Id = ")


@pytest.mark.parametrize("id", [0, 1, 42, 2**31])
def test_completed_update_template_is_valid_sqlite(id):
    conn = sqlite3.connect(":memory:")
    try:
        conn.execute("CREATE TABLE Users (Id INTEGER PRIMARY KEY, Name TEXT, Age INTEGER)")
        conn.execute(query.update("Users", ["Name", "Age"]) + str(id), {"Name": "n", "Age": 1})
    finally:
        conn.close()


def test_markers():
    assert query.insert("Users", ["Name"], marker=":") == "INSERT INTO Users (Name) VALUES (:Name)"
    assert query.insert("Users", ["Name"], marker="$") == "INSERT INTO Users (Name) VALUES ($Name)"
    with pytest.raises(ValueError, match="Unsupported placeholder marker"):
        query.insert("Users", ["Name"], marker="?")


def test_field_names_follow_declaration_order():
    assert query.field_names(Users) == ("Name", "Age")


def test_empty_field_list_is_a_configuration_error():
    with pytest.raises(RecordMappingError):
        query.insert("Empty", query.field_names(Empty))
    with pytest.raises(RecordMappingError):
        query.update("Empty", [])


@pytest.mark.parametrize("build", [query.select_many, query.delete_many])
def test_empty_id_set_rejected(build):
    with pytest.raises(EmptyIdSetError) as exc_info:
        build("Users", [])
    assert isinstance(exc_info.value, QueryError)
    assert exc_info.value.entity_name == "Users"


@pytest.mark.parametrize("bad", ["5", 1.5, None, True, "1; DROP TABLE Users"])
def test_non_integer_ids_rejected(bad):
    with pytest.raises(InvalidIdError):
        query.select_one("Users", bad)


def test_non_integer_id_in_collection_rejected():
    with pytest.raises(InvalidIdError):
        query.delete_many("Users", [1, "2"])


def test_coerce_id_accepts_index_types():
    class Handle:
        def __index__(self) -> int:
            return 12

    assert query.coerce_id(Handle()) == 12
    assert query.select_one("Users", Handle()) == "SELECT * FROM Users WHERE Id = 12"


@pytest.mark.parametrize(
    "table",
    ["Users; DROP TABLE Users", "Users--", "", "1Users", "Users Admins", "a.b.c", "[Users]", "x" * 129, "Users\n"],
)
def test_unsafe_table_names_rejected(table):
    with pytest.raises(InvalidIdentifierError):
        query.select_all(table)


@pytest.mark.parametrize("table", ["Users", "_tmp", "main.Users", "users_archive2", "Użytkownik", "main.Café"])
def test_safe_table_names_accepted(table):
    assert query.select_all(table) == f"SELECT * FROM {table}"


def test_table_name_checked_before_fields():
    with pytest.raises(InvalidIdentifierError):
        query.insert("bad name", ["Name"])
