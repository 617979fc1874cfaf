from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from groupplan.core.errors import NotFoundError, UnauthorizedError
from groupplan.core.logger import logger
from groupplan.models.notification.notification import Notification, NotificationType
from groupplan.models.trips.trip_member import TripMember
from groupplan.models.user.user import User
from groupplan.schemas.notification.notification import NotificationList, NotificationOut


class NotificationService:
    """
    In-app notifications: best-effort writes for the coordination services
    and the recipient's inbox.

    Writes run in a SAVEPOINT; a failure is logged and reported as False.
    """

    async def notify(
        self,
        db: AsyncSession,
        user_id: int,
        kind: NotificationType,
        title: str,
        message: str,
        payload: Optional[dict] = None,
    ) -> bool:
        try:
            async with db.begin_nested():
                db.add(Notification(
                    user_id=user_id,
                    type=kind,
                    title=title,
                    message=message,
                    data=payload,
                ))
        except SQLAlchemyError:
            logger.warning(f"Notification {kind.value} for user {user_id} was not written", exc_info=True)
            return False
        return True

    async def notify_members(
        self,
        db: AsyncSession,
        trip_id: int,
        kind: NotificationType,
        title: str,
        message: str,
        payload: Optional[dict] = None,
        exclude_user_id: Optional[int] = None,
    ) -> int:
        query = select(TripMember.user_id).where(TripMember.trip_id == trip_id)
        if exclude_user_id is not None:
            query = query.where(TripMember.user_id != exclude_user_id)
        user_ids = (await db.scalars(query)).all()

        delivered = 0
        for user_id in user_ids:
            if await self.notify(db, user_id, kind, title, message, payload):
                delivered += 1
        return delivered

    async def list_notifications(
        self,
        db: AsyncSession,
        current_user: User,
        unread_only: bool = False,
        limit: int = 50,
    ) -> NotificationList:
        query = select(Notification).where(Notification.user_id == current_user.id)
        if unread_only:
            query = query.where(Notification.read.is_(False))
        notifications = (await db.scalars(
            query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit)
        )).all()

        unread_count = await db.scalar(
            select(func.count(Notification.id)).where(
                Notification.user_id == current_user.id,
                Notification.read.is_(False),
            )
        )
        return NotificationList(
            notifications=[NotificationOut.model_validate(n) for n in notifications],
            unread_count=unread_count,
        )

    async def mark_all_read(self, db: AsyncSession, current_user: User) -> int:
        result = await db.execute(
            update(Notification)
            .where(Notification.user_id == current_user.id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
        await db.commit()
        return result.rowcount

    async def mark_read(self, db: AsyncSession, notification_id: int, current_user: User) -> Notification:
        notification = await self._get_own(db, notification_id, current_user)
        notification.read = True
        await db.commit()
        return notification

    async def delete_notification(self, db: AsyncSession, notification_id: int, current_user: User) -> None:
        notification = await self._get_own(db, notification_id, current_user)
        await db.delete(notification)
        await db.commit()

    async def _get_own(self, db: AsyncSession, notification_id: int, current_user: User) -> Notification:
        notification = await db.get(Notification, notification_id)
        if notification is None:
            raise NotFoundError("Notification not found")
        if notification.user_id != current_user.id:
            raise UnauthorizedError("Not your notification")
        return notification
