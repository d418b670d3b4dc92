"""Thin wrapper around a process-wide pymongo client."""

from __future__ import annotations

import logging
from typing import Any, ContextManager

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from unlinked.core.exceptions import ServiceUnavailableError
from unlinked.core.settings import settings

logger = logging.getLogger(__name__)


class MongoConnector(ContextManager["MongoConnector"]):
    """Owns a `MongoClient` and exposes the configured database.

    An already-built client (e.g. an in-memory one in tests) can be injected.
    """

    def __init__(
        self,
        *,
        uri: str | None = None,
        database: str | None = None,
        client: MongoClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or MongoClient(
            uri or settings.mongo_uri,
            appname=settings.mongo_app_name,
            serverSelectionTimeoutMS=settings.mongo_timeout_ms,
            uuidRepresentation="standard",
        )
        self._database_name = (database or settings.mongo_database).strip()

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def database(self) -> Database:
        return self._client[self._database_name]

    def get_collection(self, name: str) -> Collection:
        return self.database.get_collection(name.strip())

    def ping(self) -> bool:
        try:
            self._client.admin.command("ping")
        except PyMongoError as exc:  # pragma: no cover - network
            raise ServiceUnavailableError("MongoDB not reachable") from exc
        return True

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
            logger.info("Mongo client closed")

    def __enter__(self) -> "MongoConnector":
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()
