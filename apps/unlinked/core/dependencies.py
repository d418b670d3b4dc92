"""Central dependency providers (FastAPI + socket server).

These helpers keep heavy clients (Mongo, the Socket.IO server) process-scoped
and reusable, avoiding per-request connection creation and enabling test-time
cache clearing/overrides.
"""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pymongo.database import Database

if TYPE_CHECKING:
    from unlinked.connectors.mongo_connector import MongoConnector
    from unlinked.realtime.server import Realtime
    from unlinked.services.chat import ChatService
    from unlinked.services.notifications import NotificationPublisher, NotificationService
    from unlinked.services.users import UserDirectory


@lru_cache(maxsize=1)
def get_mongo_connector() -> MongoConnector:
    from unlinked.connectors.mongo_connector import MongoConnector

    return MongoConnector()


@lru_cache(maxsize=1)
def get_mongo_database() -> Database:
    return get_mongo_connector().database


@lru_cache(maxsize=1)
def get_user_directory() -> UserDirectory:
    from unlinked.services.users import UserDirectory

    return UserDirectory(database=get_mongo_database())


@lru_cache(maxsize=1)
def get_chat_service() -> ChatService:
    from unlinked.services.chat import ChatService

    return ChatService(database=get_mongo_database(), users=get_user_directory())


@lru_cache(maxsize=1)
def get_notification_service() -> NotificationService:
    from unlinked.services.notifications import NotificationService

    return NotificationService(database=get_mongo_database(), users=get_user_directory())


@lru_cache(maxsize=1)
def get_realtime() -> Realtime:
    from unlinked.realtime.server import create_realtime

    return create_realtime(
        users=get_user_directory(),
        chats=get_chat_service(),
        notifications=get_notification_service(),
    )


def get_notification_publisher() -> NotificationPublisher:
    return get_realtime().publisher


def clear_caches() -> None:
    """Drop every cached provider (tests swap the database between cases)."""
    for provider in (
        get_realtime,
        get_notification_service,
        get_chat_service,
        get_user_directory,
        get_mongo_database,
        get_mongo_connector,
    ):
        provider.cache_clear()


__all__ = [
    "clear_caches",
    "get_chat_service",
    "get_mongo_connector",
    "get_mongo_database",
    "get_notification_publisher",
    "get_notification_service",
    "get_realtime",
    "get_user_directory",
]
