"""Socket-side chat operations: persist through `ChatService`, then broadcast.

Nothing is emitted until the service call has returned; a failing write
raises out of here and the namespace reports it to the initiating session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from bson import ObjectId
from starlette.concurrency import run_in_threadpool

from unlinked.realtime.broadcaster import Broadcaster, chat_room, emit_many, user_room
from unlinked.realtime.typing import TypingTracker
from unlinked.schemas.chat import (
    ChatUpdatedEvent,
    MessageDeletedEvent,
    MessageOut,
    MessagesReadEvent,
    TypingUser,
    UserStopTypingEvent,
    UserTypingEvent,
)
from unlinked.services.chat import ChatService, DeletedMessage, ReadReceipt

logger = logging.getLogger(__name__)


def _chat_key(chat_id: Any) -> str:
    return str(chat_id or "").strip()


@dataclass
class ChatDispatcher:
    chats: ChatService
    broadcaster: Broadcaster
    typing: TypingTracker

    async def send_message(self, actor_id: ObjectId, chat_id: Any, content: Any) -> MessageOut:
        sent = await run_in_threadpool(self.chats.send_message, actor_id, chat_id, content)
        payload = sent.message.to_wire()

        await self.broadcaster.emit("receive_message", payload, room=chat_room(sent.chat_id))

        update = ChatUpdatedEvent(chat_id=sent.chat_id, last_message=sent.message).to_wire()
        await emit_many(
            self.broadcaster, "chat_updated", update, (user_room(p) for p in sent.recipients)
        )
        return sent.message

    async def typing_started(self, actor_id: Any, name: str, sid: str, chat_id: Any) -> None:
        chat = _chat_key(chat_id)
        if not chat:
            return
        self.typing.start(chat, str(actor_id), sid)
        event = UserTypingEvent(chat_id=chat, user=TypingUser(id=actor_id, name=name or ""))
        await self.broadcaster.emit("user_typing", event.to_wire(), room=chat_room(chat), skip_sid=sid)

    async def typing_stopped(self, actor_id: Any, sid: str, chat_id: Any) -> None:
        chat = _chat_key(chat_id)
        if not chat:
            return
        self.typing.stop(chat, str(actor_id))
        event = UserStopTypingEvent(chat_id=chat, user_id=actor_id)
        await self.broadcaster.emit(
            "user_stop_typing", event.to_wire(), room=chat_room(chat), skip_sid=sid
        )

    async def mark_read(self, actor_id: ObjectId, chat_id: Any) -> ReadReceipt:
        receipt = await run_in_threadpool(self.chats.mark_read, actor_id, chat_id)
        event = MessagesReadEvent(chat_id=receipt.chat_id, read_by=receipt.reader_id).to_wire()
        await emit_many(
            self.broadcaster, "messages_read", event, (user_room(p) for p in receipt.notify)
        )
        return receipt

    async def delete_message(self, actor_id: ObjectId, message_id: Any) -> DeletedMessage:
        deleted = await run_in_threadpool(self.chats.delete_message, actor_id, message_id)

        event = MessageDeletedEvent(message_id=deleted.message_id, chat_id=deleted.chat_id)
        await self.broadcaster.emit("message_deleted", event.to_wire(), room=chat_room(deleted.chat_id))

        if deleted.was_last:
            update = ChatUpdatedEvent(
                chat_id=deleted.chat_id, last_message=deleted.last_message
            ).to_wire()
            await emit_many(
                self.broadcaster,
                "chat_updated",
                update,
                (user_room(p) for p in deleted.participants),
            )
        return deleted


__all__ = ["ChatDispatcher"]
