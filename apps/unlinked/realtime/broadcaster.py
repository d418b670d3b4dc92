"""Room-addressed event delivery.

Services and the dispatcher only ever talk to a `Broadcaster`; the Socket.IO
server is one implementation of it. Rooms are the plain user id (personal
room) or the plain chat id (chat room), which is what the web client expects.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional, Protocol

import socketio

logger = logging.getLogger(__name__)


def user_room(user_id: Any) -> str:
    return str(user_id)


def chat_room(chat_id: Any) -> str:
    return str(chat_id)


class Broadcaster(Protocol):
    async def emit(
        self, event: str, data: Any, *, room: str, skip_sid: Optional[str] = None
    ) -> None: ...


class SocketIOBroadcaster:
    """Broadcaster backed by a python-socketio server."""

    def __init__(self, server: socketio.AsyncServer, namespace: str = "/") -> None:
        self.server = server
        self.namespace = namespace

    async def emit(
        self, event: str, data: Any, *, room: str, skip_sid: Optional[str] = None
    ) -> None:
        logger.debug("emit %s -> room=%s", event, room)
        await self.server.emit(
            event, data, room=room, skip_sid=skip_sid, namespace=self.namespace
        )


async def emit_many(
    broadcaster: Broadcaster, event: str, data: Any, rooms: Iterable[str]
) -> None:
    """Emit the same payload to each room once."""
    seen: set[str] = set()
    for room in rooms:
        if room in seen:
            continue
        seen.add(room)
        await broadcaster.emit(event, data, room=room)


__all__ = ["Broadcaster", "SocketIOBroadcaster", "chat_room", "emit_many", "user_room"]
