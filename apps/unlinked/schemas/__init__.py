"""Pydantic schemas shared across the app."""

from .chat import (
    ChatOut,
    ChatUpdatedEvent,
    MessageCreate,
    MessageDeleted,
    MessageDeletedEvent,
    MessageOut,
    MessagePreview,
    MessagesReadEvent,
    UnreadCount,
    UserStopTypingEvent,
    UserTypingEvent,
)
from .notifications import NotificationOut, NotificationType
from .users import LimitedProfile, PublicProfile, UserPublic, UserRole

__all__ = [
    # Chat
    "ChatOut",
    "ChatUpdatedEvent",
    "MessageCreate",
    "MessageDeleted",
    "MessageDeletedEvent",
    "MessageOut",
    "MessagePreview",
    "MessagesReadEvent",
    "UnreadCount",
    "UserStopTypingEvent",
    "UserTypingEvent",
    # Notifications
    "NotificationOut",
    "NotificationType",
    # Users
    "LimitedProfile",
    "PublicProfile",
    "UserPublic",
    "UserRole",
]
