from __future__ import annotations

from typing import List

from bson import ObjectId
from fastapi import APIRouter, Depends, Query

from unlinked.api.dependencies import get_current_user_id
from unlinked.core.dependencies import get_notification_service
from unlinked.schemas.chat import UnreadCount
from unlinked.schemas.notifications import BulkReadResult, NotificationOut
from unlinked.services.notifications import NotificationService

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=List[NotificationOut])
def list_notifications(
    limit: int = Query(0, ge=0, le=500, description="0 returns the whole inbox"),
    recipient_id: ObjectId = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> List[NotificationOut]:
    return svc.list_for(recipient_id, limit=limit)


@router.get("/unread/count", response_model=UnreadCount)
def unread_count(
    recipient_id: ObjectId = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> UnreadCount:
    return UnreadCount(unread_count=svc.unread_count(recipient_id))


@router.put("/read-all", response_model=BulkReadResult)
def mark_all_read(
    recipient_id: ObjectId = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> BulkReadResult:
    return BulkReadResult(updated=svc.mark_all_read(recipient_id))


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(
    notification_id: str,
    recipient_id: ObjectId = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> NotificationOut:
    return svc.mark_read(recipient_id, notification_id)


@router.delete("/{notification_id}")
def delete_notification(
    notification_id: str,
    recipient_id: ObjectId = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> dict[str, str]:
    svc.delete(recipient_id, notification_id)
    return {"message": "Notification deleted successfully"}
