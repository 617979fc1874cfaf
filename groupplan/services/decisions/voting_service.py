from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from datetime import timedelta
from typing import Dict, List, Optional
import math
from groupplan.core.clock import Clock, utcnow
from groupplan.core.errors import ExpiredError, NotActiveError, NotFoundError, ValidationError
from groupplan.core.logger import logger
from groupplan.models.decisions.voting import VotingSession, Vote, VotingStatus
from groupplan.models.notification.notification import NotificationType
from groupplan.models.user.user import User
from groupplan.schemas.decisions.voting import (
    CastVoteResult,
    OptionResult,
    VoteOut,
    VotingSessionCreate,
    VotingSessionCreateResponse,
    VotingSessionOut,
    VotingSessionSummary,
    VotingTally,
)
from groupplan.services.notifications.notification_service import NotificationService
from groupplan.services.trips.lifecycle_service import TripLifecycleService
from groupplan.services.trips.trip_member_service import (
    count_members,
    get_trip,
    require_member,
    require_organizer,
)


def percentage(count: int, total: int) -> int:
    """Whole percent, halves rounded up; 0 when nothing was cast."""
    if total == 0:
        return 0
    return math.floor(count * 100 / total + 0.5)


def compute_results(options: List[dict], vote_counts: Dict[str, int]) -> List[OptionResult]:
    total = sum(vote_counts.values())
    results = [
        OptionResult(
            option_id=option["id"],
            title=option["title"],
            votes=vote_counts.get(option["id"], 0),
            percentage=percentage(vote_counts.get(option["id"], 0), total),
        )
        for option in options
    ]
    # sort is stable, so ties keep the declared option order
    results.sort(key=lambda result: result.votes, reverse=True)
    return results


class VotingService:
    """
    Voting sessions of a trip.

    A vote row is keyed by (session, voter, option): recasting an option
    updates its rank, a different option adds a row. Participation and quorum
    therefore count distinct voters, never rows. Sessions close when every
    member has voted or, lazily, the first time they are touched after their
    deadline.
    """

    def __init__(
        self,
        notifier: Optional[NotificationService] = None,
        lifecycle: Optional[TripLifecycleService] = None,
        clock: Clock = utcnow,
    ):
        self.notifier = notifier or NotificationService()
        self.lifecycle = lifecycle or TripLifecycleService()
        self._clock = clock

    async def create_session(
        self,
        db: AsyncSession,
        trip_id: int,
        current_user: User,
        session_data: VotingSessionCreate,
    ) -> VotingSessionCreateResponse:
        await get_trip(db, trip_id)
        await require_organizer(db, trip_id, current_user.id, "create voting sessions")

        option_ids = [option.id for option in session_data.options]
        duplicates = sorted({oid for oid in option_ids if option_ids.count(oid) > 1})
        if duplicates:
            raise ValidationError(f"Duplicate option ids: {', '.join(duplicates)}")

        voting_session = VotingSession(
            trip_id=trip_id,
            type=session_data.type,
            title=session_data.title,
            options=[option.model_dump(mode="json", exclude_none=True) for option in session_data.options],
            status=VotingStatus.ACTIVE,
            expires_at=self._clock() + timedelta(hours=session_data.expiration_hours),
        )
        db.add(voting_session)
        await db.flush()

        status_update = await self.lifecycle.on_voting_created(db, trip_id)
        await self.notifier.notify_members(
            db,
            trip_id,
            NotificationType.VOTE_REMINDER,
            "New Vote",
            f'A new voting session "{session_data.title}" has been created. Cast your vote!',
            {"trip_id": trip_id, "voting_session_id": voting_session.id},
            exclude_user_id=current_user.id,
        )
        await db.commit()

        logger.info(f"Voting session {voting_session.id} ({session_data.type.value}) opened on trip {trip_id}")
        return VotingSessionCreateResponse(
            session=VotingSessionOut.model_validate(voting_session),
            status_update=status_update,
        )

    async def cast_vote(
        self,
        db: AsyncSession,
        session_id: int,
        current_user: User,
        option_id: str,
        rank: Optional[int] = None,
        trip_id: Optional[int] = None,
    ) -> CastVoteResult:
        voting_session = await db.scalar(
            select(VotingSession).where(VotingSession.id == session_id).with_for_update()
        )
        if voting_session is None or (trip_id is not None and voting_session.trip_id != trip_id):
            raise NotFoundError("Voting session not found")

        trip_id = voting_session.trip_id
        await require_member(db, trip_id, current_user.id)

        if voting_session.status != VotingStatus.ACTIVE:
            raise NotActiveError("Voting session is not active")

        if self._clock() > voting_session.expires_at:
            await self._close(db, session_id)
            await db.commit()
            logger.info(f"Voting session {session_id} expired on access")
            raise ExpiredError("Voting session has expired")

        if option_id not in {option["id"] for option in voting_session.options}:
            raise ValidationError("Invalid option")

        vote = await db.scalar(
            select(Vote).where(
                Vote.session_id == session_id,
                Vote.voter_id == current_user.id,
                Vote.option_id == option_id,
            )
        )
        if vote is None:
            vote = Vote(session_id=session_id, voter_id=current_user.id, option_id=option_id, rank=rank)
            db.add(vote)
        else:
            vote.rank = rank
        await db.flush()

        voter_count = await self._count_voters(db, session_id)
        member_count = await count_members(db, trip_id)
        closed_now = False
        if voter_count >= member_count:
            closed_now = await self._close(db, session_id)
        await db.commit()

        if closed_now:
            logger.info(f"Voting session {session_id} closed: {voter_count}/{member_count} members voted")

        return CastVoteResult(
            vote=VoteOut.model_validate(vote),
            session_status=voting_session.status,
            closed_now=closed_now,
            voter_count=voter_count,
            member_count=member_count,
        )

    async def tally(self, db: AsyncSession, session_id: int, current_user: Optional[User] = None) -> VotingTally:
        voting_session = await db.get(VotingSession, session_id)
        if voting_session is None:
            raise NotFoundError("Voting session not found")
        if current_user is not None:
            await require_member(db, voting_session.trip_id, current_user.id)
        return await self._tally(db, voting_session)

    async def list_sessions(self, db: AsyncSession, trip_id: int, current_user: User) -> List[VotingSessionSummary]:
        await get_trip(db, trip_id)
        await require_member(db, trip_id, current_user.id)

        sessions = (await db.scalars(
            select(VotingSession)
            .where(VotingSession.trip_id == trip_id)
            .order_by(VotingSession.created_at.desc(), VotingSession.id.desc())
        )).all()

        summaries = []
        for voting_session in sessions:
            tally = await self._tally(db, voting_session)
            user_votes = (await db.scalars(
                select(Vote.option_id)
                .where(Vote.session_id == voting_session.id, Vote.voter_id == current_user.id)
                .order_by(Vote.id)
            )).all()
            summaries.append(VotingSessionSummary(
                **VotingSessionOut.model_validate(voting_session).model_dump(),
                tally=tally,
                user_votes=list(user_votes),
            ))
        return summaries

    async def _tally(self, db: AsyncSession, voting_session: VotingSession) -> VotingTally:
        if voting_session.status == VotingStatus.ACTIVE and self._clock() > voting_session.expires_at:
            # reads apply the same lazy expiry as casts
            if await self._close(db, voting_session.id):
                logger.info(f"Voting session {voting_session.id} expired on read")
            await db.commit()

        # a quorum close happens before the deadline, an expiry close after it
        closed_at = voting_session.closed_at
        expired = (
            voting_session.status == VotingStatus.ACTIVE and self._clock() > voting_session.expires_at
        ) or (closed_at is not None and closed_at > voting_session.expires_at)

        rows = (await db.execute(
            select(Vote.option_id, func.count(Vote.id))
            .where(Vote.session_id == voting_session.id)
            .group_by(Vote.option_id)
        )).all()
        vote_counts = {option_id: count for option_id, count in rows}

        return VotingTally(
            session_id=voting_session.id,
            status=voting_session.status,
            expired=expired,
            total_votes=sum(vote_counts.values()),
            voter_count=await self._count_voters(db, voting_session.id),
            results=compute_results(voting_session.options, vote_counts),
        )

    async def _count_voters(self, db: AsyncSession, session_id: int) -> int:
        return await db.scalar(
            select(func.count(func.distinct(Vote.voter_id))).where(Vote.session_id == session_id)
        )

    async def _close(self, db: AsyncSession, session_id: int) -> bool:
        """Close the session if still active; True only for the call that closed it."""
        result = await db.execute(
            update(VotingSession)
            .where(VotingSession.id == session_id, VotingSession.status == VotingStatus.ACTIVE)
            .values(status=VotingStatus.CLOSED, closed_at=self._clock())
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1
