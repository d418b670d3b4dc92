"""Socket.IO namespace: handshake auth, room membership, event routing."""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Optional

import socketio
from bson import ObjectId
from pymongo.errors import PyMongoError
from socketio.exceptions import ConnectionRefusedError as HandshakeRefused
from starlette.concurrency import run_in_threadpool

from unlinked.core.exceptions import AuthenticationError, ConfigurationError, UnlinkedException
from unlinked.core.security import token_from_handshake, user_id_from_token
from unlinked.realtime.broadcaster import chat_room, user_room
from unlinked.realtime.dispatcher import ChatDispatcher
from unlinked.realtime.presence import PresenceRegistry
from unlinked.realtime.typing import TypingTracker
from unlinked.schemas.object_id import maybe_object_id
from unlinked.services.notifications import NotificationPublisher
from unlinked.services.users import UserDirectory

logger = logging.getLogger(__name__)


def _field(data: Any, key: str) -> Any:
    if isinstance(data, dict):
        return data.get(key)
    return None


def _chat_id(data: Any) -> str:
    # join_chat/leave_chat send the bare id; accept {"chatId": ...} too.
    value = data if isinstance(data, str) else _field(data, "chatId")
    return str(value or "").strip()


class ChatNamespace(socketio.AsyncNamespace):
    def __init__(
        self,
        *,
        users: UserDirectory,
        presence: PresenceRegistry,
        dispatcher: ChatDispatcher,
        publisher: NotificationPublisher,
        typing: TypingTracker,
        namespace: str = "/",
    ) -> None:
        super().__init__(namespace)
        self.users = users
        self.presence = presence
        self.dispatcher = dispatcher
        self.publisher = publisher
        self.typing = typing

    # --------------- lifecycle ---------------
    async def on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
        try:
            user_id = user_id_from_token(token_from_handshake(environ, auth))
            user = await run_in_threadpool(self.users.get, user_id)
        except AuthenticationError as exc:
            logger.info("Socket %s refused: %s", sid, exc.code)
            raise HandshakeRefused(exc.message, {"code": exc.code}) from exc
        except (ConfigurationError, PyMongoError) as exc:
            logger.exception("Socket %s refused: server error during authentication", sid)
            raise HandshakeRefused(
                "Authentication failed - Server error", {"code": "server_error"}
            ) from exc
        if user is None:
            logger.info("Socket %s refused: user_not_found", sid)
            raise HandshakeRefused("User not found", {"code": "user_not_found"})

        session = self.presence.register(sid, user["_id"], name=user.get("name", ""))
        await self.enter_room(sid, user_room(session.user_id))
        logger.info("User connected: %s (%s) sid=%s", session.name, session.user_id, sid)

    async def on_disconnect(self, sid: str, reason: Any = None) -> None:
        session = self.presence.unregister(sid)
        if session is None:
            return
        await self.typing.clear_session(sid)
        logger.info("User disconnected: %s (%s) reason=%s", session.name, session.user_id, reason)

    # --------------- rooms ---------------
    async def on_join_chat(self, sid: str, data: Any = None) -> None:
        chat = _chat_id(data)
        if not chat or self.presence.get(sid) is None:
            return
        await self.enter_room(sid, chat_room(chat))
        self.presence.joined(sid, chat_room(chat))
        logger.debug("sid=%s joined chat %s", sid, chat)

    async def on_leave_chat(self, sid: str, data: Any = None) -> None:
        chat = _chat_id(data)
        if not chat or self.presence.get(sid) is None:
            return
        await self.leave_room(sid, chat_room(chat))
        self.presence.left(sid, chat_room(chat))
        logger.debug("sid=%s left chat %s", sid, chat)

    # --------------- chat events ---------------
    async def on_send_message(self, sid: str, data: Any = None) -> None:
        await self._guard(
            sid,
            "send message",
            lambda actor: self.dispatcher.send_message(
                actor, _field(data, "chatId"), _field(data, "content")
            ),
        )

    async def on_typing(self, sid: str, data: Any = None) -> None:
        session = self.presence.get(sid)
        if session is None:
            return
        await self.dispatcher.typing_started(session.user_id, session.name, sid, _chat_id(data))

    async def on_stop_typing(self, sid: str, data: Any = None) -> None:
        session = self.presence.get(sid)
        if session is None:
            return
        await self.dispatcher.typing_stopped(session.user_id, sid, _chat_id(data))

    async def on_mark_read(self, sid: str, data: Any = None) -> None:
        await self._guard(
            sid, "mark messages as read", lambda actor: self.dispatcher.mark_read(actor, _chat_id(data))
        )

    async def on_delete_message(self, sid: str, data: Any = None) -> None:
        await self._guard(
            sid,
            "delete message",
            lambda actor: self.dispatcher.delete_message(actor, _field(data, "messageId")),
        )

    async def on_share_project(self, sid: str, data: Any = None) -> None:
        async def share(actor: ObjectId) -> None:
            shared = await self.publisher.share_project(
                actor, _field(data, "projectId"), _field(data, "toUserId")
            )
            await self.emit("project_share_success", shared.ack.to_wire(), to=sid)

        await self._guard(sid, "share project", share)

    # --------------- helpers ---------------
    def _actor(self, sid: str) -> ObjectId:
        actor = maybe_object_id(self.presence.user_for(sid))
        if actor is None:
            raise AuthenticationError("Not authenticated", code="no_session")
        return actor

    async def _guard(
        self, sid: str, operation: str, handler: Callable[[ObjectId], Awaitable[Any]]
    ) -> Optional[Any]:
        """Run `handler` for the session's user; failures go back to `sid` as `error`."""
        try:
            return await handler(self._actor(sid))
        except UnlinkedException as exc:
            logger.info("%s rejected for sid=%s: %s", operation, sid, exc.message)
            await self.emit("error", {"message": exc.message}, to=sid)
        except PyMongoError:
            logger.exception("Failed to %s (sid=%s)", operation, sid)
            await self.emit("error", {"message": f"Failed to {operation}"}, to=sid)
        return None


__all__ = ["ChatNamespace"]
