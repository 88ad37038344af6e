"""
Shadow Failure Repository.

============================================================
PURPOSE
============================================================
Durable storage for ShadowFailureRecord.

- ShadowFailureRepository: append and query failure rows
- SqlFailureRecorder: a ShadowFailureRecorder that persists
  every failure through the repository

RULES:
- Append-only. Rows are never updated or deleted here.

============================================================
"""

from typing import Dict, List

from sqlalchemy import desc, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shadow_write.models import ShadowErrorKind, ShadowFailureRecord
from shadow_write.sinks import ShadowFailureRecorder
from storage.models.shadow_write import ShadowFailureLog
from storage.repositories.base import BaseRepository


class ShadowFailureRepository(BaseRepository[ShadowFailureLog]):
    """Repository for shadow_write_failures."""

    def __init__(self, session: Session):
        super().__init__(session, ShadowFailureLog, "ShadowFailureRepository")

    def record(self, failure: ShadowFailureRecord) -> ShadowFailureLog:
        """
        Persist one failure and commit.

        Raises:
            QueryError / ConnectionError: If the insert fails
            TransactionError: If commit fails
        """
        row = ShadowFailureLog(
            entity_type=failure.entity_type,
            entity_id=failure.entity_id,
            operation=failure.operation.value,
            error_kind=failure.error_kind.value,
            error_type=type(failure.error).__name__,
            error_message=str(failure.error),
            fault_id=failure.fault_id,
            request_id=failure.request_id,
            primary_success=failure.primary_success,
            occurred_at=failure.timestamp,
        )
        try:
            self._session.add(row)
            self._session.flush()
        except SQLAlchemyError as e:
            raise self._wrap_db_error(
                e, "record", {"entity_id": failure.entity_id}
            ) from e
        self._commit("record")
        return row

    def list_for_entity(self, entity_type: str, entity_id: str) -> List[ShadowFailureLog]:
        stmt = (
            select(ShadowFailureLog)
            .where(ShadowFailureLog.entity_type == entity_type)
            .where(ShadowFailureLog.entity_id == entity_id)
            .order_by(ShadowFailureLog.occurred_at)
        )
        return self._execute_query(stmt)

    def list_recent(self, limit: int = 100) -> List[ShadowFailureLog]:
        stmt = (
            select(ShadowFailureLog)
            .order_by(desc(ShadowFailureLog.occurred_at))
            .limit(limit)
        )
        return self._execute_query(stmt)

    def count_by_kind(self) -> Dict[str, int]:
        """Row counts keyed by error kind; every kind is present."""
        stmt = (
            select(ShadowFailureLog.error_kind, func.count())
            .group_by(ShadowFailureLog.error_kind)
        )
        try:
            rows = self._session.execute(stmt).all()
        except SQLAlchemyError as e:
            raise self._wrap_db_error(e, "count_by_kind") from e

        counts = {kind.value: 0 for kind in ShadowErrorKind}
        for kind, count in rows:
            counts[kind] = int(count)
        return counts


class SqlFailureRecorder(ShadowFailureRecorder):
    """Persists shadow failures through ShadowFailureRepository."""

    def __init__(self, repository: ShadowFailureRepository):
        self._repository = repository

    def record(self, failure: ShadowFailureRecord) -> None:
        self._repository.record(failure)
