# Notifications Router for the Campaign Ledger
# Handles user notifications

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy.orm import Session
from typing import List

from database.config import get_db
from database.models import User
from schemas.campaigns import NotificationResponse
from auth.roles import Permission
from auth.decorators import require_permission
from services.notification_service import get_notification_service
from routers.common import commit

router = APIRouter(prefix="/notifications", tags=["Notifications"])


# ============================================================================
# NOTIFICATION ENDPOINTS
# ============================================================================

@router.get("", response_model=List[NotificationResponse])
async def get_notifications(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_NOTIFICATIONS)),
    unread_only: bool = Query(False, description="Only return unread notifications"),
    limit: int = Query(20, ge=1, le=100),
):
    """
    Get user's notifications, newest first.
    """
    return get_notification_service(db).list_for_user(current_user.id, unread_only=unread_only, limit=limit)


@router.get("/unread-count")
async def get_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_NOTIFICATIONS))
):
    """
    Get count of unread notifications.
    """
    return {"unread_count": get_notification_service(db).get_unread_count(current_user.id)}


@router.post("/{notification_id}/read")
async def mark_as_read(
    notification_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_NOTIFICATIONS))
):
    """
    Mark a notification as read.
    """
    if not get_notification_service(db).mark_read(notification_id, current_user.id):
        raise HTTPException(status_code=404, detail="Notification not found")

    commit(db, "mark the notification as read")
    return {"status": "success"}


@router.post("/read-all")
async def mark_all_as_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.VIEW_NOTIFICATIONS))
):
    """
    Mark all notifications as read.
    """
    count = get_notification_service(db).mark_all_read(current_user.id)
    commit(db, "mark notifications as read")

    return {"status": "success", "message": f"{count} notifications marked as read"}
