"""Domain exceptions for the record gateway.

Driver exceptions raised by SQLAlchemy are caught and re-raised as one of these
domain exceptions, with the original chained as ``__cause__``, so that callers
can handle failures without importing driver types.
"""

from __future__ import annotations


class PersistenceError(Exception):
    """Base exception for all record-gateway errors.

    Attributes:
        entity_name: The record type or table involved.
        operation: The gateway operation that failed (e.g. ``"insert_record"``).
        detail: A sanitised description of what went wrong.
    """

    def __init__(
        self,
        *,
        entity_name: str,
        operation: str,
        detail: str,
        cause: Exception | None = None,
    ) -> None:
        self.entity_name = entity_name
        self.operation = operation
        self.detail = detail
        msg = f"[{entity_name}] {operation} failed: {detail}"
        super().__init__(msg)
        if cause is not None:
            self.__cause__ = cause


class RecordNotFoundError(PersistenceError):
    """Raised when a single-record read matches no rows."""


class DuplicateRecordError(PersistenceError):
    """Raised when a write violates a uniqueness or integrity constraint."""


class ConnectionFailedError(PersistenceError):
    """Raised when a connection cannot be opened or was invalidated."""


class QueryError(PersistenceError):
    """Raised when the store rejects a statement or returns an unexpected row set."""


class TransactionError(PersistenceError):
    """Raised when a commit or rollback fails."""


class RecordMappingError(PersistenceError):
    """Raised when a record type cannot be mapped to or from table columns."""


class EmptyIdSetError(QueryError):
    """Raised when an ``IN (...)`` statement is requested for zero ids."""


class InvalidIdentifierError(QueryError):
    """Raised when a table name is not a plain SQL identifier."""


class InvalidIdError(QueryError):
    """Raised when a record id is not an integer."""
