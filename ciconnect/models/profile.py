"""SQLAlchemy ORM model for public member profiles."""
from __future__ import annotations

from sqlalchemy import Column, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from ciconnect.database import Base
from .base import TimestampMixin

UNKNOWN_USER = "Unknown User"


class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    email = Column(String(255), nullable=False)
    full_name = Column(String(150), nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    bio = Column(Text, nullable=True)
    institution = Column(String(255), nullable=True)
    degree_program = Column(String(255), nullable=True)
    graduation_year = Column(Integer, nullable=True)
    program_type = Column(
        Enum("executive", "fundamental", name="program_type"),
        nullable=False,
        default="fundamental",
        server_default="fundamental",
    )
    status = Column(
        Enum("pending", "approved", "rejected", name="profile_status"),
        nullable=False,
        default="pending",
        server_default="pending",
    )

    user = relationship("User", back_populates="profile")

    @property
    def display_name(self) -> str:
        return self.full_name or self.email or UNKNOWN_USER


__all__ = ["Profile", "UNKNOWN_USER"]
