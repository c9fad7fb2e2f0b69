"""Shared fixtures for sql-records tests."""

from __future__ import annotations

import pytest
from sql_records import AsyncRecordGateway, ConnectionFactory, RecordGateway
from sqlalchemy import event

USERS_DDL = "CREATE TABLE Users (Id INTEGER PRIMARY KEY AUTOINCREMENT, Name TEXT NOT NULL UNIQUE, Age INTEGER)"
ARCHIVE_DDL = (
    "CREATE TABLE users_archive (Id INTEGER PRIMARY KEY AUTOINCREMENT, Name TEXT NOT NULL UNIQUE, Age INTEGER)"
)
CONTACT_DDL = "CREATE TABLE Contact (Id INTEGER PRIMARY KEY AUTOINCREMENT, Email TEXT, Phone TEXT)"


class EngineActivity:
    """Counts connection checkouts and cursor executions on an engine."""

    def __init__(self) -> None:
        self.checkouts = 0
        self.statements = 0

    def on_checkout(self, *args) -> None:
        self.checkouts += 1

    def on_execute(self, *args) -> None:
        self.statements += 1


@pytest.fixture
def factory(tmp_path) -> ConnectionFactory:
    f = ConnectionFactory.from_path(tmp_path / "records.db")
    yield f
    f.dispose()


@pytest.fixture
def gateway(factory: ConnectionFactory) -> RecordGateway:
    gw = RecordGateway(factory)
    gw.execute(USERS_DDL)
    gw.execute(ARCHIVE_DDL)
    gw.execute(CONTACT_DDL)
    return gw


@pytest.fixture
def activity(gateway: RecordGateway) -> EngineActivity:
    """Engine activity recorded from after the schema was created."""
    tracker = EngineActivity()
    engine = gateway.factory.get_engine()
    event.listen(engine, "checkout", tracker.on_checkout)
    event.listen(engine, "before_cursor_execute", tracker.on_execute)
    return tracker


@pytest.fixture
async def async_gateway(tmp_path):
    f = ConnectionFactory.from_path(tmp_path / "records_async.db")
    gw = AsyncRecordGateway(f)
    await gw.execute(USERS_DDL)
    await gw.execute(CONTACT_DDL)
    yield gw
    await f.dispose_async()
