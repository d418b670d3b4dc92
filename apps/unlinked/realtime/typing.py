"""Server-side expiry for typing indicators.

A client that starts typing and then vanishes (closed tab, lost network) never
sends `stop_typing`. Each (chat, user) entry therefore carries a timer; when it
fires, or the owning session disconnects, the room gets `user_stop_typing`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, Optional, Set, Tuple

from unlinked.realtime.broadcaster import Broadcaster, chat_room
from unlinked.schemas.chat import UserStopTypingEvent

logger = logging.getLogger(__name__)

_Key = Tuple[str, str]


@dataclass
class _Entry:
    sid: str
    handle: Optional[asyncio.TimerHandle]


class TypingTracker:
    def __init__(self, broadcaster: Broadcaster, timeout: float = 8.0) -> None:
        self.broadcaster = broadcaster
        self.timeout = float(timeout)
        self._active: Dict[_Key, _Entry] = {}
        self._tasks: Set[asyncio.Task] = set()

    def start(self, chat_id: str, user_id: str, sid: str) -> bool:
        """Record (or refresh) typing; returns True when the entry is new."""
        key = (chat_id, user_id)
        existing = self._active.pop(key, None)
        if existing is not None and existing.handle is not None:
            existing.handle.cancel()

        handle = None
        if self.timeout > 0:
            loop = asyncio.get_running_loop()
            handle = loop.call_later(self.timeout, self._expire, key)
        self._active[key] = _Entry(sid=sid, handle=handle)
        return existing is None

    def stop(self, chat_id: str, user_id: str) -> bool:
        entry = self._active.pop((chat_id, user_id), None)
        if entry is None:
            return False
        if entry.handle is not None:
            entry.handle.cancel()
        return True

    def is_typing(self, chat_id: str, user_id: str) -> bool:
        return (chat_id, user_id) in self._active

    async def clear_session(self, sid: str) -> list[_Key]:
        """Drop every entry owned by `sid` and tell the rooms."""
        keys = [k for k, e in self._active.items() if e.sid == sid]
        for chat_id, user_id in keys:
            self.stop(chat_id, user_id)
            await self._announce_stop(chat_id, user_id, sid)
        return keys

    def _expire(self, key: _Key) -> None:
        entry = self._active.pop(key, None)
        if entry is None:
            return
        chat_id, user_id = key
        logger.debug("Typing expired for user %s in chat %s", user_id, chat_id)
        task = asyncio.ensure_future(self._announce_stop(chat_id, user_id, entry.sid))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _announce_stop(self, chat_id: str, user_id: str, sid: str) -> None:
        event = UserStopTypingEvent(chat_id=chat_id, user_id=user_id)
        await self.broadcaster.emit(
            "user_stop_typing", event.to_wire(), room=chat_room(chat_id), skip_sid=sid
        )

    def cancel_all(self) -> None:
        for entry in self._active.values():
            if entry.handle is not None:
                entry.handle.cancel()
        self._active.clear()


__all__ = ["TypingTracker"]
