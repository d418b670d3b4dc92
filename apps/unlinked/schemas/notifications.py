from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import Field

from unlinked.schemas.object_id import ObjectIdStr
from unlinked.schemas.users import UserPublic, WireModel


class NotificationType(str, Enum):
    like = "like"
    comment = "comment"
    connection_accepted = "connectionAccepted"
    project_shared = "projectShared"
    project_rated = "projectRated"
    profile_visit = "profileVisit"


class NotificationOut(WireModel):
    id: ObjectIdStr = Field(alias="_id")
    recipient: ObjectIdStr
    type: NotificationType
    related_user: Optional[UserPublic] = None
    # Populated summaries; None when the referenced document is gone.
    related_post: Optional[Dict[str, Any]] = None
    related_project: Optional[Dict[str, Any]] = None
    rating: Optional[int] = None
    comment: Optional[str] = None
    read: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProjectSharedEvent(WireModel):
    project: Dict[str, Any]
    sender: UserPublic


class ProjectShareAck(WireModel):
    project_id: ObjectIdStr
    to_user_id: ObjectIdStr


class BulkReadResult(WireModel):
    updated: int


__all__ = [
    "BulkReadResult",
    "NotificationOut",
    "NotificationType",
    "ProjectShareAck",
    "ProjectSharedEvent",
]
