"""REST fallback for chats.

Same `ChatService` calls as the socket events, but nothing is broadcast: a
client on this path refreshes by polling.
"""

from __future__ import annotations

import logging
from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, status

from unlinked.api.dependencies import get_current_user_id
from unlinked.core.dependencies import get_chat_service
from unlinked.schemas.chat import ChatOut, MessageCreate, MessageDeleted, MessageOut, UnreadCount
from unlinked.services.chat import ChatService

router = APIRouter(prefix="/api/v1/chats", tags=["chats"])
logger = logging.getLogger(__name__)


@router.get("", response_model=List[ChatOut])
def list_chats(
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> List[ChatOut]:
    return svc.list_chats(actor_id)


@router.get("/unread/count", response_model=UnreadCount)
def unread_count(
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> UnreadCount:
    return UnreadCount(unread_count=svc.unread_count(actor_id))


@router.get("/user/{user_id}", response_model=ChatOut)
def get_or_create_chat(
    user_id: str,
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> ChatOut:
    return svc.get_or_create_chat(actor_id, user_id)


@router.get("/{chat_id}/messages", response_model=List[MessageOut])
def list_messages(
    chat_id: str,
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> List[MessageOut]:
    return svc.list_messages(actor_id, chat_id)


@router.post(
    "/{chat_id}/messages",
    response_model=MessageOut,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    chat_id: str,
    payload: MessageCreate,
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> MessageOut:
    sent = svc.send_message(actor_id, chat_id, payload.content)
    logger.info("Message %s sent to chat %s over REST", sent.message.id, sent.chat_id)
    return sent.message


@router.delete("/messages/{message_id}", response_model=MessageDeleted)
def delete_message(
    message_id: str,
    actor_id: ObjectId = Depends(get_current_user_id),
    svc: ChatService = Depends(get_chat_service),
) -> MessageDeleted:
    deleted = svc.delete_message(actor_id, message_id)
    return MessageDeleted(message_id=deleted.message_id)
