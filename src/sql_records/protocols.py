"""Gateway protocols: the CRUD surface application code can depend on."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any, Protocol, TypeVar, runtime_checkable

R = TypeVar("R")


@runtime_checkable
class RecordStore(Protocol):
    """Synchronous CRUD over record types. Implemented by ``RecordGateway``."""

    def get_last(self, record_type: type[R], table_name: str | None = None) -> R | None:
        """Return the row with the highest ``Id``."""
        ...

    def get_record(self, record_type: type[R], id: int, table_name: str | None = None) -> R | None:
        """Return the row with the given ``Id``."""
        ...

    def get_records(self, record_type: type[R], ids: Iterable[int], table_name: str | None = None) -> list[R]:
        """Return the rows whose ``Id`` is in *ids*."""
        ...

    def get_all_records(self, record_type: type[R], table_name: str | None = None) -> list[R]:
        """Return every row of the table."""
        ...

    def insert_record(self, model: Any, table_name: str | None = None) -> int: ...

    def insert_records(
        self,
        models: Iterable[Any],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int: ...

    def update_record(self, model: Any, id: int, table_name: str | None = None) -> int: ...

    def update_records(
        self,
        pairs: Iterable[tuple[Any, int]],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int: ...

    def delete_record(self, record_type: type, id: int, table_name: str | None = None) -> int: ...

    def delete_records(self, record_type: type, ids: Iterable[int], table_name: str | None = None) -> int: ...

    def execute(self, sql: str) -> int:
        """Run one raw SQL statement without binding or validation."""
        ...


@runtime_checkable
class AsyncRecordStore(Protocol):
    """Asynchronous CRUD over record types. Implemented by ``AsyncRecordGateway``."""

    async def get_last(self, record_type: type[R], table_name: str | None = None) -> R | None: ...

    async def get_record(self, record_type: type[R], id: int, table_name: str | None = None) -> R | None: ...

    async def get_records(self, record_type: type[R], ids: Iterable[int], table_name: str | None = None) -> list[R]: ...

    async def get_all_records(self, record_type: type[R], table_name: str | None = None) -> list[R]: ...

    async def insert_record(self, model: Any, table_name: str | None = None) -> int: ...

    async def insert_records(
        self,
        models: Iterable[Any],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int: ...

    async def update_record(self, model: Any, id: int, table_name: str | None = None) -> int: ...

    async def update_records(
        self,
        pairs: Iterable[tuple[Any, int]],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int: ...

    async def delete_record(self, record_type: type, id: int, table_name: str | None = None) -> int: ...

    async def delete_records(self, record_type: type, ids: Iterable[int], table_name: str | None = None) -> int: ...

    async def execute(self, sql: str) -> int: ...
