"""Notifications: persistence, inbox queries, and real-time delivery.

`NotificationService` is synchronous and owns the `notifications` collection.
`NotificationPublisher` wraps it for async callers: it persists in the
threadpool, then pushes `new_notification` to the recipient's personal room
when the recipient currently has a live session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Optional, Protocol

from bson import ObjectId
from pydantic_core import to_jsonable_python
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError
from starlette.concurrency import run_in_threadpool

from unlinked.core.exceptions import NotFoundError, ValidationError
from unlinked.core.settings import settings
from unlinked.core.utils import utcnow_naive
from unlinked.realtime.broadcaster import Broadcaster, user_room
from unlinked.schemas.notifications import (
    NotificationOut,
    NotificationType,
    ProjectShareAck,
    ProjectSharedEvent,
)
from unlinked.schemas.object_id import maybe_object_id, require_object_id
from unlinked.schemas.users import UserPublic
from unlinked.services.users import UserDirectory

logger = logging.getLogger(__name__)

_PROJECT_SUMMARY_FIELDS = ("name", "description", "gitlink", "projecturl")
_POST_SUMMARY_FIELDS = ("content", "image")


@dataclass
class _Related:
    people: dict[ObjectId, UserPublic] = field(default_factory=dict)
    projects: dict[ObjectId, dict[str, Any]] = field(default_factory=dict)
    posts: dict[ObjectId, dict[str, Any]] = field(default_factory=dict)


@dataclass
class SharedProject:
    notification: NotificationOut
    event: ProjectSharedEvent
    ack: ProjectShareAck
    recipient_id: ObjectId


@dataclass
class NotificationService:
    """Mongo-backed notification store scoped per recipient."""

    database: Database | None = None
    users: UserDirectory | None = None
    clock: Callable[[], datetime] = utcnow_naive
    profile_visit_window: timedelta = timedelta(hours=settings.profile_visit_window_hours)

    def __post_init__(self) -> None:
        if self.database is None:
            from unlinked.core.dependencies import get_mongo_database

            self.database = get_mongo_database()
        if self.users is None:
            self.users = UserDirectory(database=self.database)
        self._notifications: Collection = self.database.get_collection(
            settings.notifications_collection
        )
        self._projects: Collection = self.database.get_collection(settings.projects_collection)
        self._posts: Collection = self.database.get_collection(settings.posts_collection)

    def ensure_indexes(self) -> None:
        self._notifications.create_index(
            [("recipient_id", ASCENDING), ("created_at", DESCENDING)], name="inbox"
        )
        self._notifications.create_index(
            [
                ("recipient_id", ASCENDING),
                ("related_user_id", ASCENDING),
                ("type", ASCENDING),
                ("created_at", DESCENDING),
            ],
            name="visit_dedup",
        )

    # --------------- writes ---------------
    def create(
        self,
        recipient_id: Any,
        kind: NotificationType | str,
        *,
        related_user_id: Any = None,
        related_post_id: Any = None,
        related_project_id: Any = None,
        rating: Optional[int] = None,
        comment: Optional[str] = None,
    ) -> NotificationOut:
        try:
            kind = NotificationType(kind)
        except ValueError as exc:
            raise ValidationError(f"Unknown notification type: {kind}") from exc

        recipient = require_object_id(recipient_id, what="User")
        if kind is not NotificationType.project_rated and (rating is not None or comment):
            raise ValidationError("Ratings and comments are only allowed on projectRated")
        if rating is not None and not (1 <= int(rating) <= 5):
            raise ValidationError("Rating must be between 1 and 5")

        now = self.clock()
        doc: dict[str, Any] = {
            "recipient_id": recipient,
            "type": kind.value,
            "related_user_id": maybe_object_id(related_user_id),
            "related_post_id": maybe_object_id(related_post_id),
            "related_project_id": maybe_object_id(related_project_id),
            "rating": int(rating) if rating is not None else None,
            "comment": comment,
            "read": False,
            "created_at": now,
            "updated_at": now,
        }
        doc["_id"] = self._notifications.insert_one(doc).inserted_id
        return self._to_out(doc)

    def record_profile_visit(self, visitor_id: Any, owner_id: Any) -> Optional[NotificationOut]:
        """Create a profileVisit unless it's a self-visit or one was sent within the window.

        Two simultaneous first visits may both pass the lookup; a duplicate
        notification is the accepted outcome.
        """
        visitor = maybe_object_id(visitor_id)
        owner = maybe_object_id(owner_id)
        if visitor is None or owner is None or visitor == owner:
            return None

        if self.profile_visit_window <= timedelta(0):
            return self.create(owner, NotificationType.profile_visit, related_user_id=visitor)

        since = self.clock() - self.profile_visit_window
        recent = self._notifications.find_one(
            {
                "recipient_id": owner,
                "related_user_id": visitor,
                "type": NotificationType.profile_visit.value,
                "created_at": {"$gte": since},
            },
            projection={"_id": 1},
        )
        if recent is not None:
            return None
        return self.create(owner, NotificationType.profile_visit, related_user_id=visitor)

    def share_project(self, sender_id: ObjectId, project_id: Any, to_user_id: Any) -> SharedProject:
        if not project_id or not to_user_id:
            raise ValidationError("Missing projectId or toUserId")
        project_oid = require_object_id(project_id, what="Project")
        recipient = require_object_id(to_user_id, what="User")

        project = self._projects.find_one({"_id": project_oid})
        if project is None:
            raise NotFoundError("Project not found")
        if self.users.get(recipient) is None:
            raise NotFoundError("User not found")

        notification = self.create(
            recipient,
            NotificationType.project_shared,
            related_user_id=sender_id,
            related_project_id=project_oid,
        )
        return SharedProject(
            notification=notification,
            event=ProjectSharedEvent(
                project=self._project_summary(project),
                sender=self.users.public_or_placeholder(sender_id),
            ),
            ack=ProjectShareAck(project_id=project_oid, to_user_id=recipient),
            recipient_id=recipient,
        )

    # --------------- inbox ---------------
    def list_for(self, recipient_id: ObjectId, *, limit: int = 0) -> list[NotificationOut]:
        cursor = self._notifications.find({"recipient_id": recipient_id}).sort(
            [("created_at", DESCENDING), ("_id", DESCENDING)]
        )
        if limit:
            cursor = cursor.limit(limit)
        docs = list(cursor)
        related = self._related(docs)
        return [self._to_out(d, related) for d in docs]

    def unread_count(self, recipient_id: ObjectId) -> int:
        return self._notifications.count_documents({"recipient_id": recipient_id, "read": False})

    def mark_read(self, recipient_id: ObjectId, notification_id: Any) -> NotificationOut:
        oid = require_object_id(notification_id, what="Notification")
        doc = self._notifications.find_one_and_update(
            {"_id": oid, "recipient_id": recipient_id},
            {"$set": {"read": True, "updated_at": self.clock()}},
            return_document=ReturnDocument.AFTER,
        )
        if doc is None:
            raise NotFoundError("Notification not found")
        return self._to_out(doc)

    def mark_all_read(self, recipient_id: ObjectId) -> int:
        res = self._notifications.update_many(
            {"recipient_id": recipient_id, "read": False},
            {"$set": {"read": True, "updated_at": self.clock()}},
        )
        return int(res.modified_count)

    def delete(self, recipient_id: ObjectId, notification_id: Any) -> None:
        oid = require_object_id(notification_id, what="Notification")
        res = self._notifications.delete_one({"_id": oid, "recipient_id": recipient_id})
        if res.deleted_count == 0:
            raise NotFoundError("Notification not found")

    # --------------- helpers ---------------
    def _related(self, docs: list[dict[str, Any]]) -> _Related:
        """Batch-load the users, projects and posts a page of notifications refers to."""
        project_ids = {d["related_project_id"] for d in docs if d.get("related_project_id")}
        post_ids = {d["related_post_id"] for d in docs if d.get("related_post_id")}

        found_projects = (
            list(self._projects.find({"_id": {"$in": list(project_ids)}})) if project_ids else []
        )
        people = self.users.public_many(
            [d["related_user_id"] for d in docs if d.get("related_user_id")]
            + [c for p in found_projects for c in p.get("collaborators") or []]
        )
        projects = {p["_id"]: self._project_summary(p, people) for p in found_projects}

        posts: dict[ObjectId, dict[str, Any]] = {}
        if post_ids:
            cursor = self._posts.find(
                {"_id": {"$in": list(post_ids)}},
                projection={k: 1 for k in _POST_SUMMARY_FIELDS},
            )
            for post in cursor:
                summary = {"_id": post["_id"], **{k: post.get(k) for k in _POST_SUMMARY_FIELDS}}
                posts[post["_id"]] = to_jsonable_python(summary, fallback=str)
        return _Related(people=people, projects=projects, posts=posts)

    def _to_out(self, doc: dict[str, Any], related: Optional[_Related] = None) -> NotificationOut:
        if related is None:
            related = self._related([doc])
        related_user = None
        related_id = doc.get("related_user_id")
        if related_id is not None:
            related_user = related.people.get(related_id) or self.users.public_or_placeholder(
                related_id
            )
        return NotificationOut(
            id=doc["_id"],
            recipient=doc["recipient_id"],
            type=doc["type"],
            related_user=related_user,
            related_post=related.posts.get(doc.get("related_post_id")),
            related_project=related.projects.get(doc.get("related_project_id")),
            rating=doc.get("rating"),
            comment=doc.get("comment"),
            read=bool(doc.get("read")),
            created_at=doc.get("created_at"),
            updated_at=doc.get("updated_at"),
        )

    def _project_summary(
        self, project: dict[str, Any], people: Optional[dict[ObjectId, UserPublic]] = None
    ) -> dict[str, Any]:
        member_ids = project.get("collaborators") or []
        if people is None:
            people = self.users.public_many(member_ids)
        collaborators = [people[m] for m in (maybe_object_id(c) for c in member_ids) if m in people]
        summary: dict[str, Any] = {"_id": project["_id"]}
        summary.update({k: project.get(k) for k in _PROJECT_SUMMARY_FIELDS})
        summary["collaborators"] = [c.to_wire() for c in collaborators]
        return to_jsonable_python(summary, fallback=str)


# -----------------
# Real-time delivery
# -----------------
class _Presence(Protocol):
    def is_online(self, user_id: Any) -> bool: ...


@dataclass
class NotificationPublisher:
    """Persist-then-deliver wrapper around `NotificationService`."""

    service: NotificationService
    broadcaster: Broadcaster
    presence: _Presence

    async def profile_visit(self, visitor_id: Any, owner_id: Any) -> Optional[NotificationOut]:
        """Best effort: storage failures are logged and never reach the viewer."""
        try:
            notification = await run_in_threadpool(
                self.service.record_profile_visit, visitor_id, owner_id
            )
        except PyMongoError:
            logger.exception("Failed to record profile visit %s -> %s", visitor_id, owner_id)
            return None
        if notification is not None:
            await self._deliver(notification)
        return notification

    async def search_visit(self, searcher_id: Any, owner_id: Any) -> Optional[NotificationOut]:
        """Entry point for the search controller, which lives outside this service.

        A user surfacing in someone else's search is reported to them as a
        profileVisit and shares the same dedup window.
        """
        return await self.profile_visit(searcher_id, owner_id)

    async def notify(
        self, recipient_id: Any, kind: NotificationType | str, **fields: Any
    ) -> NotificationOut:
        notification = await run_in_threadpool(self.service.create, recipient_id, kind, **fields)
        await self._deliver(notification)
        return notification

    async def share_project(
        self, sender_id: ObjectId, project_id: Any, to_user_id: Any
    ) -> SharedProject:
        shared = await run_in_threadpool(
            self.service.share_project, sender_id, project_id, to_user_id
        )
        room = user_room(shared.recipient_id)
        await self.broadcaster.emit("project_shared", shared.event.to_wire(), room=room)
        await self._deliver(shared.notification)
        return shared

    async def _deliver(self, notification: NotificationOut) -> bool:
        recipient = user_room(notification.recipient)
        if not self.presence.is_online(recipient):
            logger.debug("Recipient %s offline; %s stored only", recipient, notification.type.value)
            return False
        await self.broadcaster.emit("new_notification", notification.to_wire(), room=recipient)
        return True


__all__ = ["NotificationPublisher", "NotificationService", "SharedProject"]
