"""Convenience exports for schema layer."""
from .auth import AccountResponse, AuthResponse, LoginRequest, RegisterRequest
from .messages import (
    ConversationListResponse,
    ConversationResponse,
    MarkReadResponse,
    MessageResponse,
    MessageSendRequest,
    MessageThreadResponse,
    UnreadCountResponse,
)
from .networking import (
    ConnectionListResponse,
    ConnectionRequestCreate,
    ConnectionRequestResponse,
    ConnectionRequestUpdate,
    ConnectionResponse,
    MemberListResponse,
    PendingRequestListResponse,
)
from .posts import (
    PostCommentCreate,
    PostCommentResponse,
    PostEngagementResponse,
    PostFeedResponse,
    PostLikeResponse,
    PostResponse,
)
from .profiles import MemberStatsResponse, ProfileResponse, ProfileSnapshot, ProfileUpdateRequest

__all__ = [
    "AccountResponse",
    "AuthResponse",
    "LoginRequest",
    "RegisterRequest",
    "ConversationListResponse",
    "ConversationResponse",
    "MarkReadResponse",
    "MessageResponse",
    "MessageSendRequest",
    "MessageThreadResponse",
    "UnreadCountResponse",
    "ConnectionListResponse",
    "ConnectionRequestCreate",
    "ConnectionRequestResponse",
    "ConnectionRequestUpdate",
    "ConnectionResponse",
    "MemberListResponse",
    "PendingRequestListResponse",
    "PostCommentCreate",
    "PostCommentResponse",
    "PostEngagementResponse",
    "PostFeedResponse",
    "PostLikeResponse",
    "PostResponse",
    "MemberStatsResponse",
    "ProfileResponse",
    "ProfileSnapshot",
    "ProfileUpdateRequest",
]
