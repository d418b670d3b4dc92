from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from unlinked.api.dependencies import get_current_user
from unlinked.core.dependencies import get_notification_publisher, get_user_directory
from unlinked.services.notifications import NotificationPublisher
from unlinked.services.users import UserDirectory

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/{username}")
async def get_profile(
    username: str,
    viewer: dict[str, Any] = Depends(get_current_user),
    users: UserDirectory = Depends(get_user_directory),
    publisher: NotificationPublisher = Depends(get_notification_publisher),
) -> dict[str, Any]:
    """Profile lookup; viewing someone else's profile notifies its owner.

    Private profiles come back as the limited shape for everyone but the owner,
    so the payload is dumped directly rather than through a response model.
    """
    profile = await run_in_threadpool(users.profile_for, viewer["_id"], username)
    if profile.id != viewer["_id"]:
        await publisher.profile_visit(viewer["_id"], profile.id)
    return profile.to_wire()
