"""Convenience exports for service layer."""
from .auth_service import (
    authenticate_user,
    create_access_token,
    decode_access_token,
    get_current_user,
    get_optional_user,
    register_user,
)
from .change_feed import ChangeEvent, ChangeFeed, change_feed, schedule_change
from .conversation_service import Conversation, aggregate_conversations, list_conversations
from .message_service import (
    count_unread_messages,
    get_partner_profile,
    list_thread,
    mark_thread_read,
    send_message,
)
from .networking_service import (
    list_connections,
    list_members,
    list_pending_requests,
    respond_to_request,
    send_connection_request,
)
from .post_service import add_comment, create_post, list_feed, toggle_like
from .profile_service import get_member_stats, get_or_create_profile, require_profile, update_profile, upload_avatar
from .storage_service import ObjectStorage, StorageConfigurationError, StorageUploadError, get_object_storage
from .unread_notifier import NotifierState, UnreadCountNotifier, build_unread_notifier

__all__ = [
    "authenticate_user",
    "register_user",
    "create_access_token",
    "decode_access_token",
    "get_current_user",
    "get_optional_user",
    "ChangeEvent",
    "ChangeFeed",
    "change_feed",
    "schedule_change",
    "Conversation",
    "aggregate_conversations",
    "list_conversations",
    "count_unread_messages",
    "get_partner_profile",
    "list_thread",
    "mark_thread_read",
    "send_message",
    "list_connections",
    "list_members",
    "list_pending_requests",
    "respond_to_request",
    "send_connection_request",
    "add_comment",
    "create_post",
    "list_feed",
    "toggle_like",
    "get_member_stats",
    "get_or_create_profile",
    "require_profile",
    "update_profile",
    "upload_avatar",
    "ObjectStorage",
    "StorageConfigurationError",
    "StorageUploadError",
    "get_object_storage",
    "NotifierState",
    "UnreadCountNotifier",
    "build_unread_notifier",
]
