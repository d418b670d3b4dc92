"""Chat and message persistence shared by the REST routes and the socket dispatcher.

Every mutating operation validates, persists, and then returns a small result
object describing who must be told about it. Callers decide how to deliver:
the socket dispatcher broadcasts, the REST routes just return the payload.

Collections:
- chats     one document per unordered participant pair (`pair_key` is unique)
- messages  ordered within a chat by `seq`, reserved atomically on the chat

Failures surface as `UnlinkedException` subclasses or pymongo errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from unlinked.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from unlinked.core.settings import settings
from unlinked.core.utils import clamp_int, utcnow_naive
from unlinked.schemas.chat import ChatOut, MessageOut, MessagePreview
from unlinked.schemas.object_id import maybe_object_id, require_object_id
from unlinked.schemas.users import UserPublic
from unlinked.services.users import UserDirectory

logger = logging.getLogger(__name__)

_NEWEST_FIRST = [("seq", DESCENDING), ("created_at", DESCENDING)]
_OLDEST_FIRST = [("seq", ASCENDING), ("created_at", ASCENDING)]


def pair_key(user_id: ObjectId, other_id: ObjectId) -> str:
    """Canonical key for an unordered pair of users."""
    first, second = sorted((str(user_id), str(other_id)))
    return f"{first}:{second}"


# -----------------
# Results
# -----------------
@dataclass
class SentMessage:
    message: MessageOut
    chat_id: ObjectId
    participants: list[ObjectId]
    recipients: list[ObjectId]


@dataclass
class ReadReceipt:
    chat_id: ObjectId
    reader_id: ObjectId
    updated: int
    notify: list[ObjectId]


@dataclass
class DeletedMessage:
    message_id: ObjectId
    chat_id: ObjectId
    was_last: bool
    last_message: Optional[MessageOut]
    participants: list[ObjectId] = field(default_factory=list)


# -----------------
# Service
# -----------------
@dataclass
class ChatService:
    """Mongo-backed chats and messages with participant checks."""

    database: Database | None = None
    users: UserDirectory | None = None
    clock: Callable[[], datetime] = utcnow_naive
    message_limit: int = settings.message_page_limit

    def __post_init__(self) -> None:
        if self.database is None:
            from unlinked.core.dependencies import get_mongo_database

            self.database = get_mongo_database()
        if self.users is None:
            self.users = UserDirectory(database=self.database)
        self._chats: Collection = self.database.get_collection(settings.chats_collection)
        self._messages: Collection = self.database.get_collection(settings.messages_collection)

    # --------------- Indexes ---------------
    def ensure_indexes(self) -> None:
        self._chats.create_index([("pair_key", ASCENDING)], unique=True, name="uniq_pair")
        self._chats.create_index(
            [("participants", ASCENDING), ("updated_at", DESCENDING)], name="participant_recent"
        )
        self._messages.create_index([("chat_id", ASCENDING), ("seq", ASCENDING)], name="chat_seq")
        self._messages.create_index(
            [("chat_id", ASCENDING), ("sender_id", ASCENDING), ("read", ASCENDING)],
            name="chat_unread",
        )

    # --------------- Chats ---------------
    def get_or_create_chat(self, actor_id: ObjectId, other_user_id: Any) -> ChatOut:
        """Return the chat between two connected users, creating it on first contact."""
        other_id = require_object_id(other_user_id, what="User")
        if other_id == actor_id:
            raise ValidationError("You cannot start a chat with yourself")
        if self.users.get(other_id) is None:
            raise NotFoundError("User not found")
        if not self.users.are_connected(actor_id, other_id):
            raise AuthorizationError("You can only chat with your connections")

        key = pair_key(actor_id, other_id)
        now = self.clock()
        try:
            doc = self._chats.find_one_and_update(
                {"pair_key": key},
                {
                    "$setOnInsert": {
                        "participants": [actor_id, other_id],
                        "last_message_id": None,
                        "last_message_seq": 0,
                        "message_seq": 0,
                        "created_at": now,
                        "updated_at": now,
                    }
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except DuplicateKeyError:
            # A concurrent first contact won the upsert.
            doc = self._chats.find_one({"pair_key": key})
        if doc is None:  # pragma: no cover - upsert always yields a document
            raise NotFoundError("Chat not found")

        people = self.users.public_many(doc["participants"])
        return ChatOut(
            id=doc["_id"],
            participants=[people[p] for p in doc["participants"] if p in people],
            last_message=self._preview(doc.get("last_message_id")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def list_chats(self, actor_id: ObjectId) -> list[ChatOut]:
        docs = list(self._chats.find({"participants": actor_id}).sort("updated_at", DESCENDING))
        others = {p for d in docs for p in d.get("participants", []) if p != actor_id}
        people = self.users.public_many(others)

        last_ids = [d["last_message_id"] for d in docs if d.get("last_message_id")]
        previews: dict[ObjectId, MessagePreview] = {}
        if last_ids:
            for m in self._messages.find({"_id": {"$in": last_ids}}):
                previews[m["_id"]] = self._preview_of(m)

        return [
            ChatOut(
                id=d["_id"],
                participants=[people[p] for p in d.get("participants", []) if p in people],
                last_message=previews.get(d.get("last_message_id")),
                created_at=d.get("created_at"),
                updated_at=d.get("updated_at"),
            )
            for d in docs
        ]

    def require_participant(self, actor_id: ObjectId, chat_id: Any) -> dict[str, Any]:
        """Load a chat the actor belongs to, or raise NotFound/Authorization errors."""
        oid = require_object_id(chat_id, what="Chat")
        chat = self._chats.find_one({"_id": oid})
        if chat is None:
            raise NotFoundError("Chat not found")
        if actor_id not in chat.get("participants", []):
            raise AuthorizationError("You are not a participant in this chat")
        return chat

    # --------------- Messages ---------------
    def list_messages(self, actor_id: ObjectId, chat_id: Any) -> list[MessageOut]:
        """Messages oldest-first (latest `message_limit`); the others' messages become read."""
        chat = self.require_participant(actor_id, chat_id)
        limit = clamp_int(self.message_limit, lo=1, hi=5000)
        docs = list(self._messages.find({"chat_id": chat["_id"]}).sort(_NEWEST_FIRST).limit(limit))
        docs.reverse()

        senders = self.users.public_many(d["sender_id"] for d in docs)
        messages = [self._message_out(d, senders) for d in docs]

        self._mark_read(chat["_id"], actor_id)
        return messages

    def send_message(self, actor_id: ObjectId, chat_id: Any, content: Any) -> SentMessage:
        if not isinstance(content, str) or not content.strip():
            raise ValidationError("Message content cannot be empty")

        chat = self.require_participant(actor_id, chat_id)
        chat_oid = chat["_id"]

        counter = self._chats.find_one_and_update(
            {"_id": chat_oid},
            {"$inc": {"message_seq": 1}},
            projection={"message_seq": 1},
            return_document=ReturnDocument.AFTER,
        )
        if counter is None:
            raise NotFoundError("Chat not found")
        seq = int(counter["message_seq"])

        now = self.clock()
        doc = {
            "chat_id": chat_oid,
            "sender_id": actor_id,
            "content": content,
            "read": False,
            "seq": seq,
            "created_at": now,
            "updated_at": now,
        }
        doc["_id"] = self._messages.insert_one(doc).inserted_id

        # Only move the pointer forward; a concurrent send with a higher seq wins.
        self._chats.update_one(
            {
                "_id": chat_oid,
                "$or": [
                    {"last_message_seq": {"$lt": seq}},
                    {"last_message_seq": {"$exists": False}},
                ],
            },
            {"$set": {"last_message_id": doc["_id"], "last_message_seq": seq, "updated_at": now}},
        )

        sender = self.users.public_or_placeholder(actor_id)
        participants = list(chat.get("participants", []))
        logger.debug("Message %s stored in chat %s (seq=%s)", doc["_id"], chat_oid, seq)
        return SentMessage(
            message=self._message_out(doc, {actor_id: sender}),
            chat_id=chat_oid,
            participants=participants,
            recipients=[p for p in participants if p != actor_id],
        )

    def mark_read(self, actor_id: ObjectId, chat_id: Any) -> ReadReceipt:
        chat = self.require_participant(actor_id, chat_id)
        updated = self._mark_read(chat["_id"], actor_id)
        return ReadReceipt(
            chat_id=chat["_id"],
            reader_id=actor_id,
            updated=updated,
            notify=[p for p in chat.get("participants", []) if p != actor_id],
        )

    def unread_count(self, actor_id: ObjectId) -> int:
        chat_ids = [c["_id"] for c in self._chats.find({"participants": actor_id}, {"_id": 1})]
        if not chat_ids:
            return 0
        return self._messages.count_documents(
            {"chat_id": {"$in": chat_ids}, "sender_id": {"$ne": actor_id}, "read": False}
        )

    def delete_message(self, actor_id: ObjectId, message_id: Any) -> DeletedMessage:
        mid = require_object_id(message_id, what="Message")
        message = self._messages.find_one({"_id": mid})
        if message is None:
            raise NotFoundError("Message not found")
        if message.get("sender_id") != actor_id:
            raise AuthorizationError("You can only delete your own messages")

        chat = self._chats.find_one({"_id": message["chat_id"]})
        if chat is None:
            raise NotFoundError("Chat not found")
        was_last = chat.get("last_message_id") == mid

        self._messages.delete_one({"_id": mid})

        last_message: Optional[MessageOut] = None
        if was_last:
            newest = self._messages.find_one({"chat_id": chat["_id"]}, sort=_NEWEST_FIRST)
            self._chats.update_one(
                # Skip if a concurrent send already moved the pointer on.
                {"_id": chat["_id"], "last_message_id": mid},
                {
                    "$set": {
                        "last_message_id": newest["_id"] if newest else None,
                        "last_message_seq": int(newest.get("seq", 0)) if newest else 0,
                        "updated_at": self.clock(),
                    }
                },
            )
            if newest is not None:
                sender = self.users.public_or_placeholder(newest["sender_id"])
                last_message = self._message_out(newest, {newest["sender_id"]: sender})

        return DeletedMessage(
            message_id=mid,
            chat_id=chat["_id"],
            was_last=was_last,
            last_message=last_message,
            participants=list(chat.get("participants", [])),
        )

    # --------------- helpers ---------------
    def _mark_read(self, chat_oid: ObjectId, reader_id: ObjectId) -> int:
        res = self._messages.update_many(
            {"chat_id": chat_oid, "sender_id": {"$ne": reader_id}, "read": False},
            {"$set": {"read": True, "updated_at": self.clock()}},
        )
        return int(res.modified_count)

    def _preview(self, message_id: Any) -> Optional[MessagePreview]:
        oid = maybe_object_id(message_id)
        if oid is None:
            return None
        m = self._messages.find_one({"_id": oid})
        return self._preview_of(m) if m is not None else None

    @staticmethod
    def _preview_of(doc: dict[str, Any]) -> MessagePreview:
        return MessagePreview(
            id=doc["_id"],
            sender=doc["sender_id"],
            content=doc.get("content", ""),
            read=bool(doc.get("read")),
            created_at=doc.get("created_at"),
        )

    @staticmethod
    def _message_out(doc: dict[str, Any], senders: dict[ObjectId, Any]) -> MessageOut:
        sender = senders.get(doc["sender_id"]) or UserPublic(id=doc["sender_id"])
        return MessageOut(
            id=doc["_id"],
            chat_id=doc["chat_id"],
            sender=sender,
            content=doc.get("content", ""),
            read=bool(doc.get("read")),
            seq=int(doc.get("seq", 0)),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )


__all__ = [
    "ChatService",
    "DeletedMessage",
    "ReadReceipt",
    "SentMessage",
    "pair_key",
]
