"""
Shadow Write ORM Models.

============================================================
MODELS
============================================================
- EntityRecord: An entity stored by SqlEntityStore. Rows are
  namespaced by store_name, so a primary and a shadow store can
  live in one database without seeing each other's rows.
- ShadowFailureLog: Durable audit trail of shadow failures.
  Append-only.

============================================================
"""

import uuid
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, DateTime, Index, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from storage.models.base import Base, TimestampMixin


class EntityRecord(Base, TimestampMixin):
    """An entity owned by one store namespace."""

    __tablename__ = "entity_records"

    store_name: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        comment="Owning store namespace, e.g. 'primary' or 'shadow'"
    )

    id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
        comment="Entity identifier"
    )

    entity_type: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Entity type name"
    )

    payload: Mapped[Dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Entity fields, id included"
    )

    __table_args__ = (
        Index("ix_entity_records_type", "store_name", "entity_type"),
    )

    def __repr__(self) -> str:
        return f"<EntityRecord {self.store_name}/{self.entity_type}/{self.id}>"


class ShadowFailureLog(Base):
    """One row per observed shadow write failure."""

    __tablename__ = "shadow_write_failures"

    failure_id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Unique identifier for the failure row"
    )

    entity_type: Mapped[str] = mapped_column(String(64), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(128), nullable=False)
    operation: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="create, update or delete"
    )

    error_kind: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="injected or real"
    )
    error_type: Mapped[str] = mapped_column(String(128), nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    fault_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    request_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    primary_success: Mapped[bool] = mapped_column(nullable=False, default=True)

    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="When the shadow write failed"
    )

    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        Index("ix_shadow_failures_entity", "entity_type", "entity_id"),
        Index("ix_shadow_failures_kind", "error_kind"),
    )
