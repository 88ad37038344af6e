"""
Shadow Write - Store Contract.

============================================================
PURPOSE
============================================================
The storage contract both the primary and the shadow store
implement, and an in-memory implementation of it.

Entities carry an identifier: either a mapping with an "id"
key or an object (typically a dataclass) with an ``id``
attribute.

============================================================
"""

import copy
import dataclasses
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, List, Mapping, Optional, TypeVar


logger = logging.getLogger(__name__)


T = TypeVar("T")


class EntityNotFoundError(LookupError):
    """Raised when an entity does not exist in a store."""

    def __init__(self, store_name: str, entity_id: str):
        self.store_name = store_name
        self.entity_id = entity_id
        super().__init__(f"[{store_name}] Entity {entity_id} not found")


# ============================================================
# ENTITY HELPERS
# ============================================================

def entity_id_of(entity: Any) -> str:
    """Get the identifier of a mapping or attribute-style entity."""
    if isinstance(entity, Mapping):
        value = entity.get("id")
    else:
        value = getattr(entity, "id", None)
    if value is None or value == "":
        raise ValueError(f"Entity has no identifier: {entity!r}")
    return str(value)


def _has_id(entity: Any) -> bool:
    if isinstance(entity, Mapping):
        return bool(entity.get("id"))
    return bool(getattr(entity, "id", None))


def _with_id(entity: Any, entity_id: str) -> Any:
    if isinstance(entity, Mapping):
        return {**entity, "id": entity_id}
    if dataclasses.is_dataclass(entity):
        return dataclasses.replace(entity, id=entity_id)
    clone = copy.copy(entity)
    clone.id = entity_id
    return clone


def _merge(entity: Any, changes: Mapping[str, Any]) -> Any:
    if isinstance(entity, Mapping):
        return {**entity, **changes}
    if dataclasses.is_dataclass(entity):
        return dataclasses.replace(entity, **changes)
    clone = copy.copy(entity)
    for key, value in changes.items():
        setattr(clone, key, value)
    return clone


# ============================================================
# STORE CONTRACT
# ============================================================

class ShadowStore(ABC, Generic[T]):
    """Storage contract consumed by the shadow write harness."""

    @abstractmethod
    async def create(self, entity: T) -> T:
        """Persist a new entity and return it (with its id)."""
        pass

    @abstractmethod
    async def update(self, entity_id: str, changes: Mapping[str, Any]) -> T:
        """Apply a partial update and return the updated entity."""
        pass

    @abstractmethod
    async def delete(self, entity_id: str) -> None:
        """Delete an entity."""
        pass

    @abstractmethod
    async def find_by_id(self, entity_id: str) -> Optional[T]:
        """Get an entity by id, or None."""
        pass

    @abstractmethod
    async def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        """List entities, paginated."""
        pass


# ============================================================
# IN-MEMORY STORE
# ============================================================

class InMemoryStore(ShadowStore[T]):
    """
    Dict-backed store.

    Stores and returns copies so callers can't mutate stored state.
    """

    def __init__(self, name: str = "memory"):
        self.name = name
        self._data: Dict[str, T] = {}
        self._next_id = 1

    async def create(self, entity: T) -> T:
        if not _has_id(entity):
            entity = _with_id(entity, f"entity-{self._next_id}")
            self._next_id += 1
        entity_id = entity_id_of(entity)
        self._data[entity_id] = copy.deepcopy(entity)
        logger.debug(f"[{self.name}] Created {entity_id}")
        return copy.deepcopy(entity)

    async def update(self, entity_id: str, changes: Mapping[str, Any]) -> T:
        existing = self._data.get(entity_id)
        if existing is None:
            raise EntityNotFoundError(self.name, entity_id)
        updated = _merge(existing, copy.deepcopy(dict(changes)))
        self._data[entity_id] = updated
        return copy.deepcopy(updated)

    async def delete(self, entity_id: str) -> None:
        self._data.pop(entity_id, None)

    async def find_by_id(self, entity_id: str) -> Optional[T]:
        entity = self._data.get(entity_id)
        return copy.deepcopy(entity) if entity is not None else None

    async def find_all(self, limit: Optional[int] = None, offset: int = 0) -> List[T]:
        entities = list(self._data.values())
        end = None if limit is None else offset + limit
        return [copy.deepcopy(e) for e in entities[offset:end]]

    def size(self) -> int:
        return len(self._data)

    def ids(self) -> List[str]:
        return list(self._data.keys())

    def clear(self) -> None:
        self._data.clear()
