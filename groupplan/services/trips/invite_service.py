from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, delete
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from groupplan.core.clock import Clock, utcnow
from groupplan.core.errors import ExpiredError, NotActiveError, NotFoundError, UnauthorizedError
from groupplan.core.logger import logger
from groupplan.models.notification.notification import NotificationType
from groupplan.models.trips.trip_model import Trip
from groupplan.models.trips.trip_invitation import TripInvitation, PendingInvitation, InvitationStatus
from groupplan.models.user.user import User
from groupplan.schemas.trip.invite import (
    EmailDelivery,
    InviteError,
    InviteOutcome,
    InviteResponse,
    InviteResult,
    SUCCESSFUL_OUTCOMES,
)
from groupplan.services.auth.account_service import find_account_by_email
from groupplan.services.notifications.notification_service import NotificationService
from groupplan.services.trips.email_invite import SmtpEmailSender
from groupplan.services.trips.lifecycle_service import TripLifecycleService
from groupplan.services.trips.trip_member_service import (
    add_member,
    get_trip,
    is_user_already_member,
    require_member,
    require_organizer,
)


class InvitationService:
    """
    Reconciles invitations against accounts.

    Emails with an account get a durable ``TripInvitation``; emails without
    one get a time-limited ``PendingInvitation`` that is promoted when the
    account is created. For a given (trip, email) only one of the two ever
    exists.
    """

    def __init__(
        self,
        email_sender: SmtpEmailSender,
        notifier: Optional[NotificationService] = None,
        lifecycle: Optional[TripLifecycleService] = None,
        clock: Clock = utcnow,
    ):
        self.email_sender = email_sender
        self.notifier = notifier or NotificationService()
        self.lifecycle = lifecycle or TripLifecycleService()
        self._clock = clock

    async def invite(
        self,
        db: AsyncSession,
        trip_id: int,
        inviter: User,
        emails: List[str],
        expiration_hours: int,
    ) -> InviteResponse:
        trip = await get_trip(db, trip_id)
        await require_organizer(db, trip_id, inviter.id, "invite members")

        # plain values survive a rollback of a failed email below
        trip_title = trip.title
        inviter_id = inviter.id
        inviter_name = inviter.name or inviter.username or "Someone"
        expires_at = self._clock() + timedelta(hours=expiration_hours)

        invitations: List[InviteResult] = []
        errors: List[InviteError] = []
        for email in emails:
            try:
                result = await self._invite_one(
                    db, trip_id, trip_title, inviter_id, inviter_name, email.strip().lower(), expires_at
                )
            except Exception:
                await db.rollback()
                logger.error(f"Invitation of {email} to trip {trip_id} failed", exc_info=True)
                errors.append(InviteError(email=email, error="Failed to process invitation"))
                continue
            invitations.append(result)

        status_update = None
        if any(result.outcome in SUCCESSFUL_OUTCOMES for result in invitations):
            status_update = await self.lifecycle.on_invitation_sent(db, trip_id)
            await db.commit()

        logger.info(
            f"Trip {trip_id}: {len(invitations)} invitation(s) processed, {len(errors)} failed"
        )
        return InviteResponse(invitations=invitations, errors=errors, status_update=status_update)

    async def _invite_one(
        self,
        db: AsyncSession,
        trip_id: int,
        trip_title: str,
        inviter_id: int,
        inviter_name: str,
        email: str,
        expires_at: datetime,
    ) -> InviteResult:
        user_id = await find_account_by_email(db, email)

        if user_id is None:
            pending, outcome = await self._upsert_pending(db, email, trip_id, inviter_id, expires_at)
            await db.commit()
            email_status, message = await self._send_email(
                email, trip_title, inviter_name, trip_id, pending.expires_at
            )
            return InviteResult(
                email=email,
                outcome=outcome,
                expires_at=pending.expires_at,
                email_status=email_status,
                message=message,
            )

        if await is_user_already_member(db, trip_id, user_id):
            return InviteResult(email=email, outcome=InviteOutcome.ALREADY_MEMBER, user_id=user_id)

        invitation, outcome = await self._upsert_invitation(db, trip_id, user_id, expires_at)
        # an account now exists, so any pending row for this email is superseded
        await db.execute(
            delete(PendingInvitation).where(
                PendingInvitation.email == email,
                PendingInvitation.trip_id == trip_id,
            )
        )
        if outcome == InviteOutcome.INVITED:
            await self.notifier.notify(
                db,
                user_id,
                NotificationType.TRIP_INVITATION,
                "Trip Invitation",
                f'You\'ve been invited to join "{trip_title}"!',
                {"trip_id": trip_id, "invitation_id": invitation.id},
            )
        await db.commit()

        return InviteResult(
            email=email,
            outcome=outcome,
            invitation_id=invitation.id,
            user_id=user_id,
            expires_at=invitation.expires_at,
        )

    async def _upsert_invitation(
        self,
        db: AsyncSession,
        trip_id: int,
        user_id: int,
        expires_at: datetime,
    ) -> Tuple[TripInvitation, InviteOutcome]:
        query = select(TripInvitation).where(
            TripInvitation.trip_id == trip_id,
            TripInvitation.user_id == user_id,
        ).with_for_update()

        existing = await db.scalar(query)
        if existing is None:
            invitation = TripInvitation(
                trip_id=trip_id,
                user_id=user_id,
                status=InvitationStatus.PENDING,
                expires_at=expires_at,
            )
            try:
                async with db.begin_nested():
                    db.add(invitation)
                return invitation, InviteOutcome.INVITED
            except IntegrityError:
                # a concurrent invite inserted the row first
                existing = await db.scalar(query.execution_options(populate_existing=True))

        if existing.status == InvitationStatus.PENDING:
            existing.expires_at = max(existing.expires_at, expires_at)
            return existing, InviteOutcome.REFRESHED

        # declined, expired or stale accepted rows are reopened
        existing.status = InvitationStatus.PENDING
        existing.expires_at = expires_at
        existing.responded_at = None
        return existing, InviteOutcome.INVITED

    async def _upsert_pending(
        self,
        db: AsyncSession,
        email: str,
        trip_id: int,
        inviter_id: int,
        expires_at: datetime,
    ) -> Tuple[PendingInvitation, InviteOutcome]:
        query = select(PendingInvitation).where(
            PendingInvitation.email == email,
            PendingInvitation.trip_id == trip_id,
        ).with_for_update()

        existing = await db.scalar(query)
        if existing is None:
            pending = PendingInvitation(
                email=email,
                trip_id=trip_id,
                invited_by=inviter_id,
                expires_at=expires_at,
            )
            try:
                async with db.begin_nested():
                    db.add(pending)
                return pending, InviteOutcome.PENDING_CREATED
            except IntegrityError:
                existing = await db.scalar(query.execution_options(populate_existing=True))

        existing.expires_at = max(existing.expires_at, expires_at)
        return existing, InviteOutcome.PENDING_REFRESHED

    async def _send_email(
        self,
        email: str,
        trip_title: str,
        inviter_name: str,
        trip_id: int,
        expires_at: datetime,
    ) -> Tuple[EmailDelivery, str]:
        if not self.email_sender.is_configured():
            logger.warning(f"Email service not configured, invitation for {email} to trip {trip_id} recorded without email")
            return EmailDelivery.PENDING, "User not registered. Email service not configured."

        result = await self.email_sender.send_invitation_email(
            to=email,
            trip_title=trip_title,
            inviter_name=inviter_name,
            trip_id=trip_id,
            expires_at=expires_at,
        )
        if result.success:
            return EmailDelivery.SENT, "Invitation email sent successfully."

        logger.warning(f"Failed to send invitation email to {email} for trip {trip_id}: {result.error}")
        return EmailDelivery.FAILED, "Pending invitation created but email failed to send."

    async def promote_pending(self, db: AsyncSession, email: str, user_id: int) -> int:
        """Turn every live pending invitation for ``email`` into a durable one.

        Rows are handled one at a time; a failing row is logged and left in
        place. Expired rows are deleted without promotion. Returns the number
        of invitations promoted.
        """
        email = email.strip().lower()
        now = self._clock()

        rows = (await db.execute(
            select(PendingInvitation.id, PendingInvitation.trip_id, PendingInvitation.expires_at, Trip.title)
            .join(Trip, Trip.id == PendingInvitation.trip_id)
            .where(PendingInvitation.email == email, PendingInvitation.expires_at > now)
            .order_by(PendingInvitation.id)
        )).all()

        promoted = 0
        for pending_id, trip_id, expires_at, trip_title in rows:
            try:
                invitation, _ = await self._upsert_invitation(db, trip_id, user_id, expires_at)
                await self.notifier.notify(
                    db,
                    user_id,
                    NotificationType.TRIP_INVITATION,
                    "Trip Invitation",
                    f'You\'ve been invited to join "{trip_title}"!',
                    {"trip_id": trip_id, "invitation_id": invitation.id},
                )
                await db.execute(delete(PendingInvitation).where(PendingInvitation.id == pending_id))
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
                logger.error(f"Promoting pending invitation {pending_id} for user {user_id} failed", exc_info=True)
                continue
            promoted += 1

        stale = await db.execute(
            delete(PendingInvitation).where(
                PendingInvitation.email == email,
                PendingInvitation.expires_at <= now,
            )
        )
        await db.commit()

        if promoted or stale.rowcount:
            logger.info(
                f"Promoted {promoted} pending invitation(s) for user {user_id}, dropped {stale.rowcount} expired"
            )
        return promoted

    async def list_trip_invitations(self, db: AsyncSession, trip_id: int, current_user: User) -> List[TripInvitation]:
        await get_trip(db, trip_id)
        await require_member(db, trip_id, current_user.id)
        result = await db.scalars(
            select(TripInvitation)
            .where(TripInvitation.trip_id == trip_id)
            .order_by(TripInvitation.created_at.desc(), TripInvitation.id.desc())
        )
        return list(result.all())

    async def list_user_invitations(self, db: AsyncSession, current_user: User) -> List[TripInvitation]:
        result = await db.scalars(
            select(TripInvitation)
            .where(TripInvitation.user_id == current_user.id)
            .order_by(TripInvitation.created_at.desc(), TripInvitation.id.desc())
        )
        invitations = list(result.all())

        now = self._clock()
        overdue = [
            inv for inv in invitations
            if inv.status == InvitationStatus.PENDING and inv.expires_at < now
        ]
        if overdue:
            for inv in overdue:
                inv.status = InvitationStatus.EXPIRED
            await db.commit()
        return invitations

    async def respond(
        self,
        db: AsyncSession,
        invitation_id: int,
        current_user: User,
        action: str,
    ) -> Tuple[TripInvitation, str]:
        invitation = await db.scalar(
            select(TripInvitation).where(TripInvitation.id == invitation_id).with_for_update()
        )
        if invitation is None:
            raise NotFoundError("Invitation not found")
        if invitation.user_id != current_user.id:
            raise UnauthorizedError("This invitation is not for you")
        if invitation.status != InvitationStatus.PENDING:
            raise NotActiveError(f"Invitation has already been {invitation.status.value.lower()}")

        now = self._clock()
        if now > invitation.expires_at:
            invitation.status = InvitationStatus.EXPIRED
            await db.commit()
            raise ExpiredError("Invitation has expired")

        invitation.responded_at = now
        if action == "decline":
            invitation.status = InvitationStatus.DECLINED
            await db.commit()
            return invitation, "Invitation declined"

        invitation.status = InvitationStatus.ACCEPTED
        if not await is_user_already_member(db, invitation.trip_id, current_user.id):
            await add_member(db, invitation.trip_id, current_user.id)

        owner_id = await db.scalar(select(Trip.owner_id).where(Trip.id == invitation.trip_id))
        if owner_id is not None and owner_id != current_user.id:
            await self.notifier.notify(
                db,
                owner_id,
                NotificationType.TRIP_UPDATE,
                "Invitation Accepted",
                f"{current_user.name or current_user.username} has accepted your trip invitation!",
                {"trip_id": invitation.trip_id},
            )
        await db.commit()
        return invitation, "Invitation accepted"
