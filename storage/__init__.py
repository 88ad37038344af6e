"""
Storage Package.

SQL persistence for the shadow write harness.

Modules:
- database: Engine, sessions, table creation
- models/: ORM models
- repositories/: SQL stores and the failure audit trail
"""

from storage.database import (
    DatabaseConnectionError,
    DatabaseInitializationError,
    DatabasePersistenceError,
    create_all_tables,
    create_database_engine,
    get_database_url,
    get_session_factory,
    session_scope,
    verify_database_connection,
)
from storage.repositories import (
    ShadowFailureRepository,
    SqlEntityStore,
    SqlFailureRecorder,
)


__all__ = [
    # Database
    "get_database_url",
    "create_database_engine",
    "get_session_factory",
    "session_scope",
    "create_all_tables",
    "verify_database_connection",
    "DatabasePersistenceError",
    "DatabaseConnectionError",
    "DatabaseInitializationError",
    # Repositories
    "SqlEntityStore",
    "ShadowFailureRepository",
    "SqlFailureRecorder",
]
