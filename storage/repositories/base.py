"""
Base Repository Class.

============================================================
PURPOSE
============================================================
Shared plumbing for repositories:
- Session injection
- SQLAlchemy error wrapping
- Commit / rollback helpers
- Per-repository logger

============================================================
"""

import logging
from typing import Any, Generic, List, Optional, Type, TypeVar

from sqlalchemy.exc import (
    IntegrityError as SQLAlchemyIntegrityError,
    OperationalError,
    SQLAlchemyError,
)
from sqlalchemy.orm import Session

from storage.models.base import Base
from storage.repositories.exceptions import (
    ConnectionError,
    QueryError,
    RepositoryException,
    TransactionError,
)


T = TypeVar("T", bound=Base)


class BaseRepository(Generic[T]):
    """
    Base class for repositories.

    Usage:
        class MyRepository(BaseRepository[MyModel]):
            def __init__(self, session: Session):
                super().__init__(session, MyModel, "MyRepository")
    """

    def __init__(
        self,
        session: Session,
        model_class: Type[T],
        repository_name: str
    ) -> None:
        self._session = session
        self._model_class = model_class
        self._repository_name = repository_name
        self._logger = logging.getLogger(f"repository.{repository_name}")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def repository_name(self) -> str:
        return self._repository_name

    # =========================================================
    # PROTECTED HELPERS
    # =========================================================

    def _wrap_db_error(
        self,
        error: SQLAlchemyError,
        operation: str,
        context: Optional[dict] = None
    ) -> RepositoryException:
        """
        Roll back and translate a SQLAlchemy error.

        Integrity errors are returned as QueryError here; callers
        that know what a violation means (duplicate keys) check for
        SQLAlchemyIntegrityError themselves first.
        """
        self._logger.error(
            f"Database error in {operation}: {error}",
            extra={"context": context or {}},
        )
        self._session.rollback()

        if isinstance(error, OperationalError):
            return ConnectionError(
                repository_name=self._repository_name,
                operation=operation,
                original_error=str(error)
            )
        return QueryError(
            repository_name=self._repository_name,
            operation=operation,
            original_error=str(error)
        )

    @staticmethod
    def _is_integrity_error(error: SQLAlchemyError) -> bool:
        return isinstance(error, SQLAlchemyIntegrityError)

    def _get(self, key: Any) -> Optional[T]:
        """Get an entity by primary key."""
        try:
            return self._session.get(self._model_class, key)
        except SQLAlchemyError as e:
            raise self._wrap_db_error(e, "get", {"key": str(key)}) from e

    def _execute_query(self, stmt: Any) -> List[T]:
        """Execute a select statement and return the entities."""
        try:
            return list(self._session.execute(stmt).scalars().all())
        except SQLAlchemyError as e:
            raise self._wrap_db_error(e, "query") from e

    def _execute_scalar(self, stmt: Any) -> Any:
        """Execute a statement returning a single scalar."""
        try:
            return self._session.execute(stmt).scalar()
        except SQLAlchemyError as e:
            raise self._wrap_db_error(e, "query_scalar") from e

    def _commit(self, operation: str) -> None:
        """
        Commit the current transaction.

        Raises:
            TransactionError: If commit fails (after rolling back)
        """
        try:
            self._session.commit()
        except SQLAlchemyError as e:
            self._session.rollback()
            raise TransactionError(
                repository_name=self._repository_name,
                operation=operation,
                phase="commit",
                original_error=str(e)
            ) from e
