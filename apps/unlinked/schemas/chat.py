from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from unlinked.schemas.object_id import ObjectIdStr
from unlinked.schemas.users import UserPublic, WireModel


class MessageCreate(BaseModel):
    # Emptiness is a business rule (400), enforced by ChatService, not a 422.
    content: str = ""


class MessageOut(WireModel):
    """A message with its sender populated."""

    id: ObjectIdStr = Field(alias="_id")
    chat_id: ObjectIdStr
    sender: UserPublic
    content: str
    read: bool = False
    seq: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MessagePreview(WireModel):
    """Last-message summary shown in chat lists (sender left as an id)."""

    id: ObjectIdStr = Field(alias="_id")
    sender: ObjectIdStr
    content: str
    read: bool = False
    created_at: Optional[datetime] = None


class ChatOut(WireModel):
    id: ObjectIdStr = Field(alias="_id")
    participants: List[UserPublic] = Field(default_factory=list)
    last_message: Optional[MessagePreview] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UnreadCount(WireModel):
    unread_count: int


class MessageDeleted(WireModel):
    message: str = "Message deleted successfully"
    message_id: ObjectIdStr


# ---- socket event payloads ----
class ChatUpdatedEvent(WireModel):
    chat_id: ObjectIdStr
    last_message: Optional[MessageOut] = None


class MessageDeletedEvent(WireModel):
    message_id: ObjectIdStr
    chat_id: ObjectIdStr


class MessagesReadEvent(WireModel):
    chat_id: ObjectIdStr
    read_by: ObjectIdStr


class TypingUser(WireModel):
    id: ObjectIdStr = Field(alias="_id")
    name: str = ""


class UserTypingEvent(WireModel):
    chat_id: str
    user: TypingUser


class UserStopTypingEvent(WireModel):
    chat_id: str
    user_id: ObjectIdStr


__all__ = [
    "ChatOut",
    "ChatUpdatedEvent",
    "MessageCreate",
    "MessageDeleted",
    "MessageDeletedEvent",
    "MessageOut",
    "MessagePreview",
    "MessagesReadEvent",
    "TypingUser",
    "UnreadCount",
    "UserStopTypingEvent",
    "UserTypingEvent",
]
