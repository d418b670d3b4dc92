from __future__ import annotations

import os
import socket
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import mongomock
import pytest
from bson import ObjectId

# Ensure the app runs in a unit-test-safe configuration during pytest collection.
# This keeps a developer's local .env (real Mongo URI, secrets) out of unit tests.
os.environ.setdefault("APP_ENV", "test")

from unlinked.core.security import issue_token  # noqa: E402
from unlinked.realtime.presence import PresenceRegistry  # noqa: E402
from unlinked.services.chat import ChatService  # noqa: E402
from unlinked.services.notifications import NotificationPublisher, NotificationService  # noqa: E402
from unlinked.services.users import UserDirectory  # noqa: E402


class NetworkBlockedError(RuntimeError):
    pass


def _blocked(*_args: Any, **_kwargs: Any) -> Any:
    raise NetworkBlockedError(
        "Network access is disabled during tests. "
        "Mark the test with @pytest.mark.integration/@pytest.mark.network or set ALLOW_NETWORK=1."
    )


@pytest.fixture(autouse=True)
def _disable_network(monkeypatch: pytest.MonkeyPatch, request: pytest.FixtureRequest) -> None:
    """Prevent accidental outbound network calls in unit tests."""

    if os.getenv("ALLOW_NETWORK") == "1":
        return

    if request.node.get_closest_marker("integration") or request.node.get_closest_marker("network"):
        return

    monkeypatch.setattr(socket, "create_connection", _blocked)
    monkeypatch.setattr(socket, "getaddrinfo", _blocked)


# -----------------
# Fakes
# -----------------
class FakeClock:
    """Deterministic naive-UTC clock; call it like `utcnow_naive`."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> datetime:
        self.now = self.now + timedelta(**delta)
        return self.now


class RecordingBroadcaster:
    """Collects emits instead of sending them."""

    def __init__(self) -> None:
        self.events: list[dict[str, Any]] = []

    async def emit(
        self, event: str, data: Any, *, room: str, skip_sid: Optional[str] = None
    ) -> None:
        self.events.append({"event": event, "data": data, "room": room, "skip_sid": skip_sid})

    def named(self, event: str) -> list[dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]

    def rooms(self, event: str) -> list[str]:
        return [e["room"] for e in self.named(event)]


# -----------------
# Mongo-backed services
# -----------------
@pytest.fixture()
def mongo_db():
    client = mongomock.MongoClient()
    yield client["unlinked_test"]
    client.close()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def users(mongo_db) -> UserDirectory:
    directory = UserDirectory(database=mongo_db)
    directory.ensure_indexes()
    return directory


@pytest.fixture()
def chat_service(mongo_db, users, clock) -> ChatService:
    svc = ChatService(database=mongo_db, users=users, clock=clock)
    svc.ensure_indexes()
    return svc


@pytest.fixture()
def notification_service(mongo_db, users, clock) -> NotificationService:
    svc = NotificationService(database=mongo_db, users=users, clock=clock)
    svc.ensure_indexes()
    return svc


@pytest.fixture()
def make_user(mongo_db) -> Callable[..., ObjectId]:
    def _make(username: str, *, name: Optional[str] = None, private: bool = False, **extra: Any) -> ObjectId:
        doc = {
            "name": name or username.title(),
            "username": username,
            "email": f"{username}@example.com",
            "password": "hashed",
            "role": "student",
            "profile_picture": "",
            "connections": [],
            "privacy_settings": {"is_profile_private": private},
        }
        doc.update(extra)
        return mongo_db["users"].insert_one(doc).inserted_id

    return _make


@pytest.fixture()
def connect(mongo_db) -> Callable[[ObjectId, ObjectId], None]:
    def _connect(a: ObjectId, b: ObjectId) -> None:
        mongo_db["users"].update_one({"_id": a}, {"$addToSet": {"connections": b}})
        mongo_db["users"].update_one({"_id": b}, {"$addToSet": {"connections": a}})

    return _connect


@pytest.fixture()
def chat_between(chat_service, make_user, connect):
    """Two connected users and their chat: (alice, bob, chat_id)."""
    alice = make_user("alice")
    bob = make_user("bob")
    connect(alice, bob)
    chat = chat_service.get_or_create_chat(alice, bob)
    return alice, bob, chat.id


# -----------------
# Real-time collaborators
# -----------------
@pytest.fixture()
def broadcaster() -> RecordingBroadcaster:
    return RecordingBroadcaster()


@pytest.fixture()
def presence() -> PresenceRegistry:
    return PresenceRegistry()


@pytest.fixture()
def publisher(notification_service, broadcaster, presence) -> NotificationPublisher:
    return NotificationPublisher(
        service=notification_service, broadcaster=broadcaster, presence=presence
    )


@pytest.fixture()
def auth_headers() -> Callable[[ObjectId], dict[str, str]]:
    def _headers(user_id: ObjectId) -> dict[str, str]:
        return {"Authorization": f"Bearer {issue_token(user_id)}"}

    return _headers


@pytest.fixture()
def api_client(mongo_db, users, chat_service, notification_service, publisher):
    from fastapi import FastAPI
    from fastapi.testclient import TestClient

    from unlinked.api import register_routes
    from unlinked.core import dependencies as deps
    from unlinked.core.exceptions import register_exception_handlers

    app = FastAPI()
    register_exception_handlers(app)
    register_routes(app)
    app.dependency_overrides[deps.get_mongo_database] = lambda: mongo_db
    app.dependency_overrides[deps.get_user_directory] = lambda: users
    app.dependency_overrides[deps.get_chat_service] = lambda: chat_service
    app.dependency_overrides[deps.get_notification_service] = lambda: notification_service
    app.dependency_overrides[deps.get_notification_publisher] = lambda: publisher
    return TestClient(app)
