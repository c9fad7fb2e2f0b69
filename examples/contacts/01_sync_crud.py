#!/usr/bin/env python3
"""Example 1: Synchronous CRUD against a throwaway SQLite file.

Demonstrates:
- Declaring record types (pydantic ``Record`` subclass and a plain dataclass)
- Insert, read back by id, update, delete
- Table-name overrides and the not-found policy
"""

import tempfile
from dataclasses import dataclass
from pathlib import Path

from sql_records import GatewayOptions, Record, RecordGateway, RecordNotFoundError


class Contact(Record):
    Name: str
    Email: str
    Phone: str | None = None


@dataclass
class Note:
    Text: str = ""
    Id: int | None = None


workdir = Path(tempfile.mkdtemp())
gateway = RecordGateway(workdir / "contacts.db")

gateway.execute("CREATE TABLE Contact (Id INTEGER PRIMARY KEY AUTOINCREMENT, Name TEXT, Email TEXT, Phone TEXT)")
gateway.execute("CREATE TABLE Note (Id INTEGER PRIMARY KEY AUTOINCREMENT, Text TEXT)")
gateway.execute(
    "CREATE TABLE archived_contacts (Id INTEGER PRIMARY KEY AUTOINCREMENT, Name TEXT, Email TEXT, Phone TEXT)"
)

# ---------------------------------------------------------------------------
# 1. Insert and read back
# ---------------------------------------------------------------------------

gateway.insert_record(Contact(Name="Ada Lovelace", Email="ada@example.com"))
gateway.insert_records(
    [
        Contact(Name="Grace Hopper", Email="grace@example.com", Phone="555-0100"),
        Contact(Name="Alan Turing", Email="alan@example.com"),
    ]
)

newest = gateway.get_last(Contact)
print(f"Newest contact: #{newest.Id} {newest.Name}")
print("Contacts 1 and 3:", [c.Name for c in gateway.get_records(Contact, [1, 3])])

# ---------------------------------------------------------------------------
# 2. Update and delete
# ---------------------------------------------------------------------------

gateway.update_record(Contact(Name="Ada King", Email="ada@example.com", Phone="555-0199"), 1)
print("After update:", gateway.get_record(Contact, 1))

gateway.delete_record(Contact, 3)
print("Remaining:", [c.Name for c in gateway.get_all_records(Contact)])

# ---------------------------------------------------------------------------
# 3. Other tables, other record shapes
# ---------------------------------------------------------------------------

gateway.insert_record(Contact(Name="Old Friend", Email="old@example.com"), table_name="archived_contacts")
print("Archived:", [c.Name for c in gateway.get_all_records(Contact, table_name="archived_contacts")])

gateway.insert_record(Note(Text="Call Grace about COBOL"))
print("Note:", gateway.get_last(Note))

# ---------------------------------------------------------------------------
# 4. Not-found policy
# ---------------------------------------------------------------------------

try:
    gateway.get_record(Contact, 999)
except RecordNotFoundError as exc:
    print("Strict gateway:", exc)

lenient = RecordGateway(gateway.factory, options=GatewayOptions(missing="none"))
print("Lenient gateway:", lenient.get_record(Contact, 999))

gateway.factory.dispose()
