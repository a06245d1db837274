"""ORM model representing connection requests between members."""
from __future__ import annotations

import uuid

from sqlalchemy import Column, Enum, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ciconnect.database import Base
from .base import TimestampMixin


class NetworkingRequest(TimestampMixin, Base):
    __tablename__ = "networking_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sender_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    receiver_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum("pending", "accepted", "rejected", name="networking_request_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )

    sender_profile = relationship(
        "Profile",
        primaryjoin="foreign(NetworkingRequest.sender_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )
    receiver_profile = relationship(
        "Profile",
        primaryjoin="foreign(NetworkingRequest.receiver_id) == Profile.id",
        viewonly=True,
        uselist=False,
    )

    __table_args__ = (UniqueConstraint("sender_id", "receiver_id", name="uq_networking_request_pair"),)


__all__ = ["NetworkingRequest"]
