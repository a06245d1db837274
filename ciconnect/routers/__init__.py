"""Aggregate router exports."""
from .auth import router as auth_router
from .messages import router as messages_router
from .messages import unread_router as unread_messages_router
from .networking import router as networking_router
from .posts import router as posts_router
from .profiles import router as profiles_router
from .realtime import router as realtime_router

__all__ = [
    "auth_router",
    "messages_router",
    "unread_messages_router",
    "networking_router",
    "posts_router",
    "profiles_router",
    "realtime_router",
]
