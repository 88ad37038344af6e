"""
Repository Layer.

============================================================
REPOSITORIES
============================================================
- SqlEntityStore: ShadowStore over entity_records
- ShadowFailureRepository: shadow_write_failures audit rows
- SqlFailureRecorder: harness failure recorder backed by the above

All repositories take an injected Session and wrap SQLAlchemy
errors in RepositoryException subclasses.

============================================================
"""

from storage.repositories.base import BaseRepository
from storage.repositories.entity_store import SqlEntityStore
from storage.repositories.exceptions import (
    ConnectionError,
    DuplicateRecordError,
    QueryError,
    RecordNotFoundError,
    RepositoryException,
    TransactionError,
)
from storage.repositories.shadow_failures import (
    ShadowFailureRepository,
    SqlFailureRecorder,
)


__all__ = [
    # Base
    "BaseRepository",
    # Repositories
    "SqlEntityStore",
    "ShadowFailureRepository",
    "SqlFailureRecorder",
    # Exceptions
    "RepositoryException",
    "RecordNotFoundError",
    "DuplicateRecordError",
    "QueryError",
    "TransactionError",
    "ConnectionError",
]
