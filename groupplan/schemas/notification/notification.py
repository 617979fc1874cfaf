from pydantic import BaseModel
from typing import List, Optional
from datetime import datetime
from groupplan.models.notification.notification import NotificationType


class NotificationOut(BaseModel):
    id: int
    type: NotificationType
    title: str
    message: str
    data: Optional[dict] = None
    read: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationList(BaseModel):
    notifications: List[NotificationOut]
    unread_count: int


class NotificationsMarkedRead(BaseModel):
    updated: int
    message: str = "All notifications marked as read"
