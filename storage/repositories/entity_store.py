"""
SQL Entity Store.

============================================================
PURPOSE
============================================================
A ShadowStore backed by the entity_records table.

Entities are plain dicts. Each store instance owns one
store_name namespace, so a "primary" and a "shadow" store
can share a database and still diverge independently.

Every write commits on its own: a failed shadow write never
rolls back anything the primary store has committed.

============================================================
"""

import copy
import uuid
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shadow_write.stores import ShadowStore
from storage.models.shadow_write import EntityRecord
from storage.repositories.base import BaseRepository
from storage.repositories.exceptions import (
    DuplicateRecordError,
    RecordNotFoundError,
)


class SqlEntityStore(BaseRepository[EntityRecord], ShadowStore[Dict[str, Any]]):
    """
    Dict entity store over SQLAlchemy.

    - create: assigns a uuid4 id when the entity has none;
      raises DuplicateRecordError when the id exists
    - update: raises RecordNotFoundError when the id is missing
    - delete: no-op when the id is missing
    """

    def __init__(self, session: Session, store_name: str, entity_type: str):
        super().__init__(session, EntityRecord, f"SqlEntityStore.{store_name}")
        self.store_name = store_name
        self.entity_type = entity_type

    # =========================================================
    # WRITES
    # =========================================================

    async def create(self, entity: Mapping[str, Any]) -> Dict[str, Any]:
        payload = copy.deepcopy(dict(entity))
        if not payload.get("id"):
            payload["id"] = str(uuid.uuid4())
        entity_id = str(payload["id"])

        if self._get((self.store_name, entity_id)) is not None:
            raise DuplicateRecordError(self._repository_name, entity_id)

        record = EntityRecord(
            store_name=self.store_name,
            id=entity_id,
            entity_type=self.entity_type,
            payload=payload,
        )
        try:
            self._session.add(record)
            self._session.flush()
        except SQLAlchemyError as e:
            if self._is_integrity_error(e):
                self._session.rollback()
                raise DuplicateRecordError(self._repository_name, entity_id) from e
            raise self._wrap_db_error(e, "create", {"id": entity_id}) from e

        self._commit("create")
        self._logger.debug(f"Created {self.entity_type} {entity_id}")
        return copy.deepcopy(payload)

    async def update(self, entity_id: str, changes: Mapping[str, Any]) -> Dict[str, Any]:
        record = self._get((self.store_name, entity_id))
        if record is None:
            raise RecordNotFoundError(self._repository_name, entity_id, operation="update")

        # JSON columns only track reassignment, so build a new dict.
        payload = {**record.payload, **copy.deepcopy(dict(changes)), "id": entity_id}
        record.payload = payload
        self._commit("update")
        self._logger.debug(f"Updated {self.entity_type} {entity_id}")
        return copy.deepcopy(payload)

    async def delete(self, entity_id: str) -> None:
        record = self._get((self.store_name, entity_id))
        if record is None:
            return
        try:
            self._session.delete(record)
        except SQLAlchemyError as e:
            raise self._wrap_db_error(e, "delete", {"id": entity_id}) from e
        self._commit("delete")
        self._logger.debug(f"Deleted {self.entity_type} {entity_id}")

    # =========================================================
    # READS
    # =========================================================

    async def find_by_id(self, entity_id: str) -> Optional[Dict[str, Any]]:
        record = self._get((self.store_name, entity_id))
        return copy.deepcopy(record.payload) if record is not None else None

    async def find_all(
        self,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[Dict[str, Any]]:
        stmt = (
            select(EntityRecord)
            .where(EntityRecord.store_name == self.store_name)
            .where(EntityRecord.entity_type == self.entity_type)
            .order_by(EntityRecord.created_at, EntityRecord.id)
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return [copy.deepcopy(r.payload) for r in self._execute_query(stmt)]

    def count(self) -> int:
        """Number of entities in this namespace."""
        stmt = (
            select(func.count())
            .select_from(EntityRecord)
            .where(EntityRecord.store_name == self.store_name)
            .where(EntityRecord.entity_type == self.entity_type)
        )
        return int(self._execute_scalar(stmt) or 0)
