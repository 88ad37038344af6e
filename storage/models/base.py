"""
Base ORM Model and Mixins.

============================================================
COMPONENTS
============================================================
- Base: SQLAlchemy declarative base for all harness tables
- TimestampMixin: created_at / updated_at columns

JSON columns use the generic JSON type so the same models run
on PostgreSQL (primary database) and SQLite (tests, rehearsals).

============================================================
"""

from datetime import datetime

from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class TimestampMixin:
    """
    Mixin providing standard timestamp columns.

    Timestamps are set by the database, so rows written through
    either store namespace share one clock.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        comment="Record creation timestamp (UTC)"
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
        comment="Last update timestamp (UTC)"
    )
