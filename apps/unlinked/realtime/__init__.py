"""Socket.IO transport: presence, rooms, and chat/notification events."""

from .broadcaster import Broadcaster, SocketIOBroadcaster, chat_room, user_room
from .presence import PresenceRegistry

__all__ = ["Broadcaster", "PresenceRegistry", "SocketIOBroadcaster", "chat_room", "user_room"]
