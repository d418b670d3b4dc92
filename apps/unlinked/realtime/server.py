"""Wire the Socket.IO server and its collaborators together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import socketio

from unlinked.core.settings import settings
from unlinked.realtime.broadcaster import SocketIOBroadcaster
from unlinked.realtime.dispatcher import ChatDispatcher
from unlinked.realtime.namespace import ChatNamespace
from unlinked.realtime.presence import PresenceRegistry
from unlinked.realtime.typing import TypingTracker
from unlinked.services.chat import ChatService
from unlinked.services.notifications import NotificationPublisher, NotificationService
from unlinked.services.users import UserDirectory


@dataclass
class Realtime:
    server: socketio.AsyncServer
    namespace: ChatNamespace
    presence: PresenceRegistry
    broadcaster: SocketIOBroadcaster
    typing: TypingTracker
    dispatcher: ChatDispatcher
    publisher: NotificationPublisher


def create_realtime(
    *,
    users: UserDirectory,
    chats: ChatService,
    notifications: NotificationService,
    cors_origins: Optional[Sequence[str]] = None,
    typing_timeout: Optional[float] = None,
) -> Realtime:
    server = socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=list(cors_origins if cors_origins is not None else settings.socket_origins),
        logger=False,
        engineio_logger=False,
    )
    broadcaster = SocketIOBroadcaster(server)
    presence = PresenceRegistry()
    typing = TypingTracker(
        broadcaster,
        timeout=settings.typing_timeout_seconds if typing_timeout is None else typing_timeout,
    )
    dispatcher = ChatDispatcher(chats=chats, broadcaster=broadcaster, typing=typing)
    publisher = NotificationPublisher(
        service=notifications, broadcaster=broadcaster, presence=presence
    )
    namespace = ChatNamespace(
        users=users,
        presence=presence,
        dispatcher=dispatcher,
        publisher=publisher,
        typing=typing,
    )
    server.register_namespace(namespace)
    return Realtime(
        server=server,
        namespace=namespace,
        presence=presence,
        broadcaster=broadcaster,
        typing=typing,
        dispatcher=dispatcher,
        publisher=publisher,
    )


__all__ = ["Realtime", "create_realtime"]
