"""SQLAlchemy ORM model for direct messages."""
from __future__ import annotations

import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import expression, func

from ciconnect.database import Base


class Message(Base):
    __tablename__ = "messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    content = Column(Text, nullable=False)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)
    read = Column(Boolean, nullable=False, default=False, server_default=expression.false())

    # Profile snapshots; either side may be missing when a member never set one up.
    sender_profile = relationship(
        "Profile",
        primaryjoin="foreign(Message.sender_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )
    receiver_profile = relationship(
        "Profile",
        primaryjoin="foreign(Message.receiver_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )


__all__ = ["Message"]
