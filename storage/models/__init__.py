"""
Storage Models Package.

- Base, TimestampMixin (base.py)
- EntityRecord, ShadowFailureLog (shadow_write.py)
"""

from storage.models.base import Base, TimestampMixin
from storage.models.shadow_write import EntityRecord, ShadowFailureLog


__all__ = [
    "Base",
    "TimestampMixin",
    "EntityRecord",
    "ShadowFailureLog",
]
