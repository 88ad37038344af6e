"""
Repository Layer Exceptions.

============================================================
PURPOSE
============================================================
SQLAlchemy errors never leave a repository raw: they are
wrapped in these exceptions, with the original chained.

When a repository is the PRIMARY store of a shadow write
harness, these propagate to the caller unchanged. When it is
the SHADOW store, the harness classifies them as real errors.

============================================================
"""

from typing import Any, Optional


class RepositoryException(Exception):
    """Base exception for all repository operations."""

    def __init__(
        self,
        message: str,
        repository_name: str,
        operation: str,
        details: Optional[dict] = None
    ) -> None:
        self.message = message
        self.repository_name = repository_name
        self.operation = operation
        self.details = details or {}
        super().__init__(f"[{repository_name}] {operation}: {message}")


class RecordNotFoundError(RepositoryException):
    """Raised when a record expected to exist does not."""

    def __init__(
        self,
        repository_name: str,
        record_id: Any,
        operation: str = "get"
    ) -> None:
        super().__init__(
            message=f"Record {record_id} not found",
            repository_name=repository_name,
            operation=operation,
            details={"id": str(record_id)}
        )
        self.record_id = record_id


class DuplicateRecordError(RepositoryException):
    """Raised when creating a record whose key already exists."""

    def __init__(self, repository_name: str, record_id: Any) -> None:
        super().__init__(
            message=f"Record {record_id} already exists",
            repository_name=repository_name,
            operation="create",
            details={"id": str(record_id)}
        )
        self.record_id = record_id


class ConnectionError(RepositoryException):
    """Raised when the database can't be reached."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Database connection failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class QueryError(RepositoryException):
    """Raised when a statement fails for any other reason."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Query failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"original_error": original_error}
        )


class TransactionError(RepositoryException):
    """Raised when commit or rollback fails."""

    def __init__(
        self,
        repository_name: str,
        operation: str,
        phase: str,
        original_error: str
    ) -> None:
        super().__init__(
            message=f"Transaction {phase} failed: {original_error}",
            repository_name=repository_name,
            operation=operation,
            details={"phase": phase, "original_error": original_error}
        )
        self.phase = phase
