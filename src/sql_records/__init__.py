"""SQL Records: generic CRUD for plain record types over SQLAlchemy."""

from sql_records import query
from sql_records.connections import ConnectionFactory, ConnectionProfile, InvalidConnectionURL
from sql_records.exceptions import (
    ConnectionFailedError,
    DuplicateRecordError,
    EmptyIdSetError,
    InvalidIdentifierError,
    InvalidIdError,
    PersistenceError,
    QueryError,
    RecordMappingError,
    RecordNotFoundError,
    TransactionError,
)
from sql_records.gateway import AsyncRecordGateway, GatewayOptions, RecordGateway
from sql_records.protocols import AsyncRecordStore, RecordStore
from sql_records.schema import Record, RecordSchema

__all__ = [
    "AsyncRecordGateway",
    "AsyncRecordStore",
    "ConnectionFactory",
    "ConnectionFailedError",
    "ConnectionProfile",
    "DuplicateRecordError",
    "EmptyIdSetError",
    "GatewayOptions",
    "InvalidConnectionURL",
    "InvalidIdError",
    "InvalidIdentifierError",
    "PersistenceError",
    "QueryError",
    "Record",
    "RecordGateway",
    "RecordMappingError",
    "RecordNotFoundError",
    "RecordSchema",
    "RecordStore",
    "TransactionError",
    "query",
]
