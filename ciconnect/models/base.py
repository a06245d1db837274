"""Column mixins shared by CI Connect tables."""
from __future__ import annotations

from sqlalchemy import Column, DateTime
from sqlalchemy.sql import func


class TimestampMixin:
    """``created_at``/``updated_at`` for rows that change after insert (profiles, connection requests)."""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


__all__ = ["TimestampMixin"]
