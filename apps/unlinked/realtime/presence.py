"""In-memory registry of live socket sessions.

Single process only. A user is online while at least one session is registered
for them; the chat rooms a session joined are tracked so typing indicators can
be cleared when it goes away.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set


@dataclass
class Session:
    sid: str
    user_id: str
    name: str = ""
    rooms: Set[str] = field(default_factory=set)


class PresenceRegistry:
    def __init__(self) -> None:
        self._sessions: Dict[str, Session] = {}
        self._by_user: Dict[str, Set[str]] = defaultdict(set)

    def register(self, sid: str, user_id: Any, *, name: str = "") -> Session:
        session = Session(sid=sid, user_id=str(user_id), name=name)
        self._sessions[sid] = session
        self._by_user[session.user_id].add(sid)
        return session

    def unregister(self, sid: str) -> Optional[Session]:
        session = self._sessions.pop(sid, None)
        if session is None:
            return None
        sids = self._by_user.get(session.user_id)
        if sids is not None:
            sids.discard(sid)
            if not sids:
                self._by_user.pop(session.user_id, None)
        return session

    def get(self, sid: str) -> Optional[Session]:
        return self._sessions.get(sid)

    def user_for(self, sid: str) -> Optional[str]:
        session = self._sessions.get(sid)
        return session.user_id if session else None

    def joined(self, sid: str, room: str) -> None:
        session = self._sessions.get(sid)
        if session is not None:
            session.rooms.add(room)

    def left(self, sid: str, room: str) -> None:
        session = self._sessions.get(sid)
        if session is not None:
            session.rooms.discard(room)

    def rooms_for(self, sid: str) -> Set[str]:
        session = self._sessions.get(sid)
        return set(session.rooms) if session else set()

    def sessions_for(self, user_id: Any) -> Set[str]:
        return set(self._by_user.get(str(user_id), ()))

    def is_online(self, user_id: Any) -> bool:
        return bool(self._by_user.get(str(user_id)))

    def online_users(self) -> Set[str]:
        return set(self._by_user)

    def __len__(self) -> int:
        return len(self._sessions)


__all__ = ["PresenceRegistry", "Session"]
