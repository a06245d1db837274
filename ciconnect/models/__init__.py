"""Convenience exports for ORM models."""
from .message import Message
from .networking_request import NetworkingRequest
from .post import Post, PostComment, PostLike
from .profile import UNKNOWN_USER, Profile
from .user import User

__all__ = [
    "Message",
    "NetworkingRequest",
    "Post",
    "PostComment",
    "PostLike",
    "Profile",
    "UNKNOWN_USER",
    "User",
]
