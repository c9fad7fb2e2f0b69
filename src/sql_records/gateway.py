"""Record gateways: generic CRUD for record types over a connection factory.

:class:`RecordGateway` is synchronous and :class:`AsyncRecordGateway` runs on
asyncio; both expose the same methods. Every public call acquires one
connection, runs its statement(s) on it sequentially, and releases it on every
exit path. Nothing is shared between calls except the engine.

SQL text comes from :mod:`sql_records.query`; record fields are bound as named
parameters through SQLAlchemy :func:`~sqlalchemy.text`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Iterable, Iterator, Mapping, Sequence
from contextlib import asynccontextmanager, contextmanager
from pathlib import Path
from typing import Any, Literal, TypeVar

from pydantic import BaseModel
from sqlalchemy import Connection, TextClause, text
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    MultipleResultsFound,
    SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import AsyncConnection

from sql_records import query
from sql_records.connections import ConnectionFactory
from sql_records.exceptions import (
    ConnectionFailedError,
    DuplicateRecordError,
    PersistenceError,
    QueryError,
    RecordMappingError,
    RecordNotFoundError,
    TransactionError,
)
from sql_records.schema import ID_FIELD, RecordSchema

logger = logging.getLogger(__name__)

R = TypeVar("R")

# Marker understood by SQLAlchemy text() on every dialect.
_BIND_MARKER = ":"


class GatewayOptions(BaseModel):
    """Behaviour switches shared by both gateways."""

    missing: Literal["raise", "none"] = "raise"
    """What ``get_record``/``get_last`` do when no row matches: raise
    :class:`RecordNotFoundError` or return ``None``."""

    atomic_batches: bool = False
    """Run batch writes in one transaction, rolled back on the first failure.
    When off, each statement is committed as soon as it succeeds."""

    model_config = {"extra": "forbid"}


def _translate(exc: SQLAlchemyError, entity_name: str, operation: str) -> PersistenceError:
    """Map a SQLAlchemy exception onto the domain hierarchy (logged, not raised)."""
    if isinstance(exc, IntegrityError):
        logger.error("%s failed for %s: constraint violation", operation, entity_name)
        return DuplicateRecordError(
            entity_name=entity_name,
            operation=operation,
            detail="A record violates a uniqueness or integrity constraint.",
            cause=exc,
        )
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        logger.error("%s failed for %s: connection invalidated", operation, entity_name)
        return ConnectionFailedError(
            entity_name=entity_name,
            operation=operation,
            detail="Database connection was lost during the statement.",
            cause=exc,
        )
    if isinstance(exc, MultipleResultsFound):
        logger.error("%s failed for %s: more than one row matched", operation, entity_name)
        return QueryError(
            entity_name=entity_name,
            operation=operation,
            detail="Expected at most one row, got several.",
            cause=exc,
        )
    logger.error("%s failed for %s: %s", operation, entity_name, type(exc).__name__)
    return QueryError(
        entity_name=entity_name,
        operation=operation,
        detail="Statement execution failed.",
        cause=exc,
    )


def _connect_failed(exc: SQLAlchemyError, entity_name: str, operation: str) -> ConnectionFailedError:
    logger.error("%s could not connect for %s: %s", operation, entity_name, type(exc).__name__)
    return ConnectionFailedError(
        entity_name=entity_name,
        operation=operation,
        detail="Could not open a database connection.",
        cause=exc,
    )


def _transaction_failed(exc: SQLAlchemyError, entity_name: str, operation: str, action: str) -> TransactionError:
    logger.error("%s could not %s for %s: %s", operation, action, entity_name, type(exc).__name__)
    return TransactionError(
        entity_name=entity_name,
        operation=operation,
        detail=f"Transaction {action} failed.",
        cause=exc,
    )


class _WritePlan:
    """One statement plus the parameter sets to run it with, in order."""

    __slots__ = ("table", "statement", "params")

    def __init__(self, table: str, sql: str, params: Sequence[Mapping[str, Any]]) -> None:
        self.table = table
        self.statement: TextClause = text(sql)
        self.params = params


class _GatewayBase:
    """Statement preparation shared by the sync and async gateways. No I/O."""

    def __init__(
        self,
        connection: str | Path | ConnectionFactory,
        *,
        options: GatewayOptions | None = None,
    ) -> None:
        if isinstance(connection, ConnectionFactory):
            self._factory = connection
        elif isinstance(connection, Path):
            self._factory = ConnectionFactory.from_path(connection)
        else:
            self._factory = ConnectionFactory.from_connection_string(connection)
        self._options = options or GatewayOptions()

    @property
    def factory(self) -> ConnectionFactory:
        return self._factory

    @property
    def options(self) -> GatewayOptions:
        return self._options

    def _atomic(self, atomic: bool | None) -> bool:
        return self._options.atomic_batches if atomic is None else atomic

    def _missing(self, table: str, operation: str) -> None:
        if self._options.missing == "none":
            return None
        raise RecordNotFoundError(entity_name=table, operation=operation, detail="No matching row.")

    @staticmethod
    def _table(schema: RecordSchema, table_name: str | None) -> str:
        return schema.name if table_name is None else table_name

    @staticmethod
    def _uniform_schema(models: Sequence[Any], operation: str) -> RecordSchema:
        record_type = type(models[0])
        for model in models[1:]:
            if type(model) is not record_type:
                raise RecordMappingError(
                    entity_name=record_type.__name__,
                    operation=operation,
                    detail=f"Batch mixes '{record_type.__name__}' with '{type(model).__name__}'.",
                )
        return RecordSchema.of(record_type)

    def _plan_inserts(self, models: Iterable[Any], table_name: str | None, operation: str) -> _WritePlan | None:
        batch = list(models)
        if not batch:
            return None
        schema = self._uniform_schema(batch, operation)
        fields = schema.require_fields(operation)
        table = self._table(schema, table_name)
        sql = query.insert(table, fields, marker=_BIND_MARKER)
        return _WritePlan(table, sql, [schema.values(model) for model in batch])

    def _plan_updates(
        self, pairs: Iterable[tuple[Any, int]], table_name: str | None, operation: str
    ) -> _WritePlan | None:
        batch = list(pairs)
        if not batch:
            return None
        schema = self._uniform_schema([model for model, _ in batch], operation)
        fields = schema.require_fields(operation)
        table = self._table(schema, table_name)
        sql = query.update_by_id(table, fields, marker=_BIND_MARKER)
        params = [{**schema.values(model), ID_FIELD: query.coerce_id(id, table=table)} for model, id in batch]
        return _WritePlan(table, sql, params)


class RecordGateway(_GatewayBase):
    """Synchronous CRUD over a connection factory.

    Example::

        gateway = RecordGateway("app.db")
        gateway.insert_record(User(Name="Ada", Age=36))
        ada = gateway.get_last(User)
        gateway.update_record(User(Name="Ada", Age=37), ada.Id)

    Table names default to the record type's class name; every method takes a
    ``table_name`` override.
    """

    @contextmanager
    def _connect(self, table: str, operation: str) -> Iterator[Connection]:
        try:
            conn = self._factory.get_engine().connect()
        except SQLAlchemyError as exc:
            raise _connect_failed(exc, table, operation) from exc
        try:
            yield conn
        finally:
            conn.close()

    def _commit(self, conn: Connection, table: str, operation: str) -> None:
        try:
            conn.commit()
        except SQLAlchemyError as exc:
            raise _transaction_failed(exc, table, operation, "commit") from exc

    def _fetch_all(self, schema: RecordSchema, table: str, sql: str, operation: str) -> list[Any]:
        logger.debug("%s on %s", operation, table)
        with self._connect(table, operation) as conn:
            try:
                rows = conn.execute(text(sql)).mappings().all()
            except SQLAlchemyError as exc:
                raise _translate(exc, table, operation) from exc
        return [schema.materialize(row) for row in rows]

    def _fetch_one(self, schema: RecordSchema, table: str, sql: str, operation: str) -> Any:
        logger.debug("%s on %s", operation, table)
        with self._connect(table, operation) as conn:
            try:
                row = conn.execute(text(sql)).mappings().one_or_none()
            except SQLAlchemyError as exc:
                raise _translate(exc, table, operation) from exc
        if row is None:
            return self._missing(table, operation)
        return schema.materialize(row)

    def _write(self, plan: _WritePlan, operation: str, atomic: bool) -> int:
        logger.debug("%s on %s: %d statement(s), atomic=%s", operation, plan.table, len(plan.params), atomic)
        total = 0
        done = 0
        with self._connect(plan.table, operation) as conn:
            try:
                for params in plan.params:
                    total += conn.execute(plan.statement, params).rowcount
                    done += 1
                    if not atomic:
                        self._commit(conn, plan.table, operation)
            except SQLAlchemyError as exc:
                if atomic:
                    logger.warning("%s on %s rolled back after %d statement(s)", operation, plan.table, done)
                    try:
                        conn.rollback()
                    except SQLAlchemyError as rollback_exc:
                        raise _transaction_failed(rollback_exc, plan.table, operation, "rollback") from exc
                raise _translate(exc, plan.table, operation) from exc
            if atomic:
                self._commit(conn, plan.table, operation)
        return total

    # -- Reads ----------------------------------------------------------------

    def get_last(self, record_type: type[R], table_name: str | None = None) -> R | None:
        """Return the row with the highest ``Id``."""
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return self._fetch_one(schema, table, query.last(table), "get_last")

    def get_record(self, record_type: type[R], id: int, table_name: str | None = None) -> R | None:
        """Return the row whose ``Id`` equals *id*."""
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return self._fetch_one(schema, table, query.select_one(table, id), "get_record")

    def get_records(self, record_type: type[R], ids: Iterable[int], table_name: str | None = None) -> list[R]:
        """Return the rows whose ``Id`` is in *ids*, in the order the store yields them."""
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        ids = list(ids)
        if not ids:
            return []
        return self._fetch_all(schema, table, query.select_many(table, ids), "get_records")

    def get_all_records(self, record_type: type[R], table_name: str | None = None) -> list[R]:
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return self._fetch_all(schema, table, query.select_all(table), "get_all_records")

    # -- Writes ---------------------------------------------------------------

    def insert_record(self, model: Any, table_name: str | None = None) -> int:
        plan = self._plan_inserts([model], table_name, "insert_record")
        return self._write(plan, "insert_record", atomic=False)

    def insert_records(
        self,
        models: Iterable[Any],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int:
        """Insert each model with its own statement, on one connection.

        Returns the number of rows inserted. An empty batch never connects.
        """
        plan = self._plan_inserts(models, table_name, "insert_records")
        if plan is None:
            return 0
        return self._write(plan, "insert_records", self._atomic(atomic))

    def update_record(self, model: Any, id: int, table_name: str | None = None) -> int:
        plan = self._plan_updates([(model, id)], table_name, "update_record")
        return self._write(plan, "update_record", atomic=False)

    def update_records(
        self,
        pairs: Iterable[tuple[Any, int]],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int:
        """Update each ``(model, id)`` pair with its own statement, on one connection."""
        plan = self._plan_updates(pairs, table_name, "update_records")
        if plan is None:
            return 0
        return self._write(plan, "update_records", self._atomic(atomic))

    def delete_record(self, record_type: type, id: int, table_name: str | None = None) -> int:
        table = self._table(RecordSchema.of(record_type), table_name)
        plan = _WritePlan(table, query.delete(table, id), [{}])
        return self._write(plan, "delete_record", atomic=False)

    def delete_records(self, record_type: type, ids: Iterable[int], table_name: str | None = None) -> int:
        table = self._table(RecordSchema.of(record_type), table_name)
        ids = list(ids)
        if not ids:
            return 0
        plan = _WritePlan(table, query.delete_many(table, ids), [{}])
        return self._write(plan, "delete_records", atomic=False)

    def execute(self, sql: str) -> int:
        """Run one raw SQL statement as-is: no parameter binding, no validation, no result mapping.

        The text goes straight to the DB-API cursor, so it must hold a single
        statement; the SQLite drivers reject scripts with several, which surface
        as :class:`QueryError`. Run each statement of a script with its own call.
        """
        logger.debug("execute raw statement")
        with self._connect("raw", "execute") as conn:
            try:
                rowcount = conn.exec_driver_sql(sql).rowcount
            except SQLAlchemyError as exc:
                raise _translate(exc, "raw", "execute") from exc
            self._commit(conn, "raw", "execute")
        return rowcount


class AsyncRecordGateway(_GatewayBase):
    """Asyncio counterpart of :class:`RecordGateway`.

    Calls suspend only while connecting, executing and closing; there is no
    internal concurrency. Concurrent calls each get their own connection.
    """

    @asynccontextmanager
    async def _connect(self, table: str, operation: str) -> AsyncIterator[AsyncConnection]:
        try:
            conn = await self._factory.get_async_engine().connect().start()
        except SQLAlchemyError as exc:
            raise _connect_failed(exc, table, operation) from exc
        try:
            yield conn
        finally:
            await conn.close()

    async def _commit(self, conn: AsyncConnection, table: str, operation: str) -> None:
        try:
            await conn.commit()
        except SQLAlchemyError as exc:
            raise _transaction_failed(exc, table, operation, "commit") from exc

    async def _fetch_all(self, schema: RecordSchema, table: str, sql: str, operation: str) -> list[Any]:
        logger.debug("%s on %s", operation, table)
        async with self._connect(table, operation) as conn:
            try:
                result = await conn.execute(text(sql))
                rows = result.mappings().all()
            except SQLAlchemyError as exc:
                raise _translate(exc, table, operation) from exc
        return [schema.materialize(row) for row in rows]

    async def _fetch_one(self, schema: RecordSchema, table: str, sql: str, operation: str) -> Any:
        logger.debug("%s on %s", operation, table)
        async with self._connect(table, operation) as conn:
            try:
                result = await conn.execute(text(sql))
                row = result.mappings().one_or_none()
            except SQLAlchemyError as exc:
                raise _translate(exc, table, operation) from exc
        if row is None:
            return self._missing(table, operation)
        return schema.materialize(row)

    async def _write(self, plan: _WritePlan, operation: str, atomic: bool) -> int:
        logger.debug("%s on %s: %d statement(s), atomic=%s", operation, plan.table, len(plan.params), atomic)
        total = 0
        done = 0
        async with self._connect(plan.table, operation) as conn:
            try:
                for params in plan.params:
                    result = await conn.execute(plan.statement, params)
                    total += result.rowcount
                    done += 1
                    if not atomic:
                        await self._commit(conn, plan.table, operation)
            except SQLAlchemyError as exc:
                if atomic:
                    logger.warning("%s on %s rolled back after %d statement(s)", operation, plan.table, done)
                    try:
                        await conn.rollback()
                    except SQLAlchemyError as rollback_exc:
                        raise _transaction_failed(rollback_exc, plan.table, operation, "rollback") from exc
                raise _translate(exc, plan.table, operation) from exc
            if atomic:
                await self._commit(conn, plan.table, operation)
        return total

    # -- Reads ----------------------------------------------------------------

    async def get_last(self, record_type: type[R], table_name: str | None = None) -> R | None:
        """Return the row with the highest ``Id``."""
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return await self._fetch_one(schema, table, query.last(table), "get_last")

    async def get_record(self, record_type: type[R], id: int, table_name: str | None = None) -> R | None:
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return await self._fetch_one(schema, table, query.select_one(table, id), "get_record")

    async def get_records(self, record_type: type[R], ids: Iterable[int], table_name: str | None = None) -> list[R]:
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        ids = list(ids)
        if not ids:
            return []
        return await self._fetch_all(schema, table, query.select_many(table, ids), "get_records")

    async def get_all_records(self, record_type: type[R], table_name: str | None = None) -> list[R]:
        schema = RecordSchema.of(record_type)
        table = self._table(schema, table_name)
        return await self._fetch_all(schema, table, query.select_all(table), "get_all_records")

    # -- Writes ---------------------------------------------------------------

    async def insert_record(self, model: Any, table_name: str | None = None) -> int:
        plan = self._plan_inserts([model], table_name, "insert_record")
        return await self._write(plan, "insert_record", atomic=False)

    async def insert_records(
        self,
        models: Iterable[Any],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int:
        plan = self._plan_inserts(models, table_name, "insert_records")
        if plan is None:
            return 0
        return await self._write(plan, "insert_records", self._atomic(atomic))

    async def update_record(self, model: Any, id: int, table_name: str | None = None) -> int:
        plan = self._plan_updates([(model, id)], table_name, "update_record")
        return await self._write(plan, "update_record", atomic=False)

    async def update_records(
        self,
        pairs: Iterable[tuple[Any, int]],
        table_name: str | None = None,
        *,
        atomic: bool | None = None,
    ) -> int:
        plan = self._plan_updates(pairs, table_name, "update_records")
        if plan is None:
            return 0
        return await self._write(plan, "update_records", self._atomic(atomic))

    async def delete_record(self, record_type: type, id: int, table_name: str | None = None) -> int:
        table = self._table(RecordSchema.of(record_type), table_name)
        plan = _WritePlan(table, query.delete(table, id), [{}])
        return await self._write(plan, "delete_record", atomic=False)

    async def delete_records(self, record_type: type, ids: Iterable[int], table_name: str | None = None) -> int:
        table = self._table(RecordSchema.of(record_type), table_name)
        ids = list(ids)
        if not ids:
            return 0
        plan = _WritePlan(table, query.delete_many(table, ids), [{}])
        return await self._write(plan, "delete_records", atomic=False)

    async def execute(self, sql: str) -> int:
        """Run one raw SQL statement as-is: no parameter binding, no validation, no result mapping.

        The text goes straight to the DB-API cursor, so it must hold a single
        statement; the SQLite drivers reject scripts with several, which surface
        as :class:`QueryError`. Run each statement of a script with its own call.
        """
        logger.debug("execute raw statement")
        async with self._connect("raw", "execute") as conn:
            try:
                result = await conn.exec_driver_sql(sql)
                rowcount = result.rowcount
            except SQLAlchemyError as exc:
                raise _translate(exc, "raw", "execute") from exc
            await self._commit(conn, "raw", "execute")
        return rowcount
