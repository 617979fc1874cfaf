from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from groupplan.core.database import get_db
from groupplan.dependencies.auth import get_current_user
from groupplan.dependencies.services import get_notification_service
from groupplan.models.user.user import User
from groupplan.schemas.notification.notification import (
    NotificationList,
    NotificationOut,
    NotificationsMarkedRead,
)
from groupplan.services.notifications.notification_service import NotificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=NotificationList)
async def list_notifications(
    unread: bool = False,
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return await notification_service.list_notifications(db, current_user, unread_only=unread, limit=limit)


@router.patch("", response_model=NotificationsMarkedRead)
async def mark_all_notifications_read(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    updated = await notification_service.mark_all_read(db, current_user)
    return NotificationsMarkedRead(updated=updated)


@router.patch("/{notification_id}", response_model=NotificationOut)
async def mark_notification_read(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    return await notification_service.mark_read(db, notification_id, current_user)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    notification_service: NotificationService = Depends(get_notification_service),
):
    await notification_service.delete_notification(db, notification_id, current_user)
    return {"detail": "Notification deleted"}
