"""Read-side access to the user directory.

Users are created and edited by the account service; this module only reads
them to authenticate sockets, gate chats on connections, and populate display
fields on messages and notifications.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from bson import ObjectId
from pymongo import ASCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from unlinked.core.exceptions import NotFoundError
from unlinked.core.settings import settings
from unlinked.schemas.object_id import maybe_object_id
from unlinked.schemas.users import LimitedProfile, PublicProfile, UserPublic

logger = logging.getLogger(__name__)

PUBLIC_PROJECTION = {"name": 1, "username": 1, "profile_picture": 1}


def _is_private(doc: dict[str, Any]) -> bool:
    privacy = doc.get("privacy_settings") or {}
    return bool(privacy.get("is_profile_private"))


@dataclass
class UserDirectory:
    """Mongo-backed lookups over the `users` collection."""

    database: Database | None = None
    collection_name: str = settings.users_collection

    def __post_init__(self) -> None:
        if self.database is None:
            from unlinked.core.dependencies import get_mongo_database

            self.database = get_mongo_database()
        self._users: Collection = self.database.get_collection(self.collection_name)

    def ensure_indexes(self) -> None:
        self._users.create_index([("username", ASCENDING)], unique=True, name="uniq_username")
        self._users.create_index([("email", ASCENDING)], unique=True, name="uniq_email")

    # --------------- lookups ---------------
    def get(self, user_id: Any) -> Optional[dict[str, Any]]:
        oid = maybe_object_id(user_id)
        if oid is None:
            return None
        return self._users.find_one({"_id": oid}, projection={"password": 0})

    def get_by_username(self, username: str) -> Optional[dict[str, Any]]:
        username = (username or "").strip()
        if not username:
            return None
        return self._users.find_one({"username": username}, projection={"password": 0})

    def public(self, user_id: Any) -> Optional[UserPublic]:
        oid = maybe_object_id(user_id)
        if oid is None:
            return None
        doc = self._users.find_one({"_id": oid}, projection=PUBLIC_PROJECTION)
        return UserPublic.model_validate(doc) if doc else None

    def public_or_placeholder(self, user_id: ObjectId) -> UserPublic:
        """Display fields for `user_id`; bare id when the account is gone."""
        return self.public(user_id) or UserPublic(id=user_id)

    def public_many(self, user_ids: Iterable[Any]) -> dict[ObjectId, UserPublic]:
        oids = {oid for oid in (maybe_object_id(u) for u in user_ids) if oid is not None}
        if not oids:
            return {}
        cursor = self._users.find({"_id": {"$in": list(oids)}}, projection=PUBLIC_PROJECTION)
        return {doc["_id"]: UserPublic.model_validate(doc) for doc in cursor}

    # --------------- relationships ---------------
    def are_connected(self, user_id: Any, other_id: Any) -> bool:
        """True when `other_id` is in `user_id`'s connection list."""
        uid = maybe_object_id(user_id)
        oid = maybe_object_id(other_id)
        if uid is None or oid is None:
            return False
        doc = self._users.find_one({"_id": uid, "connections": oid}, projection={"_id": 1})
        return doc is not None

    # --------------- profiles ---------------
    def profile_for(self, viewer_id: ObjectId, username: str) -> PublicProfile | LimitedProfile:
        doc = self.get_by_username(username)
        if doc is None:
            raise NotFoundError("User not found")
        if _is_private(doc) and doc["_id"] != viewer_id:
            return LimitedProfile.model_validate(doc)
        return PublicProfile.model_validate(doc)


__all__ = ["PUBLIC_PROJECTION", "UserDirectory"]
