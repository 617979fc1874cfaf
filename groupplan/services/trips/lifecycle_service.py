from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from typing import Iterable, Optional
from groupplan.core.logger import logger
from groupplan.models.trips.trip_model import Trip, TripStatus, TRIP_STATUS_ORDER
from groupplan.schemas.common import AdvisoryUpdate


def is_past(current: TripStatus, target: TripStatus) -> bool:
    """True when ``current`` lies beyond ``target`` in the planning lifecycle."""
    if current == TripStatus.CANCELLED:
        return True
    return TRIP_STATUS_ORDER.index(current) > TRIP_STATUS_ORDER.index(target)


class TripLifecycleService:
    """
    Moves the advisory trip status as a side effect of invitation, survey and
    voting milestones.

    Every transition is best-effort: a missing trip, an unmet precondition or a
    storage failure yields ``AdvisoryUpdate(applied=False)`` and never raises.
    The caller commits.
    """

    async def advance(
        self,
        db: AsyncSession,
        trip_id: int,
        target: TripStatus,
        only_from: Optional[Iterable[TripStatus]] = None,
        skip_if_past: bool = False,
    ) -> AdvisoryUpdate:
        previous = None
        try:
            async with db.begin_nested():
                trip = await db.get(Trip, trip_id, with_for_update=True)
                if trip is None:
                    return AdvisoryUpdate.skipped(target, None, "Trip not found")

                previous = trip.status
                if only_from is not None and previous not in set(only_from):
                    return AdvisoryUpdate.skipped(target, previous, f"Trip is {previous.value}")
                if skip_if_past and is_past(previous, target):
                    return AdvisoryUpdate.skipped(target, previous, f"Trip already past {target.value}")

                trip.status = target
        except SQLAlchemyError:
            logger.warning(f"Status update of trip {trip_id} to {target.value} failed", exc_info=True)
            return AdvisoryUpdate.skipped(target, previous, "Status update failed")

        if previous != target:
            logger.info(f"Trip {trip_id} moved {previous.value} -> {target.value}")
        return AdvisoryUpdate(applied=True, target=target, previous=previous)

    async def on_invitation_sent(self, db: AsyncSession, trip_id: int) -> AdvisoryUpdate:
        return await self.advance(db, trip_id, TripStatus.INVITING, only_from=[TripStatus.PLANNING])

    async def on_survey_created(self, db: AsyncSession, trip_id: int) -> AdvisoryUpdate:
        # organizers may re-survey at any stage, so this overwrites unconditionally
        return await self.advance(db, trip_id, TripStatus.SURVEYING)

    async def on_voting_created(self, db: AsyncSession, trip_id: int) -> AdvisoryUpdate:
        return await self.advance(db, trip_id, TripStatus.VOTING, skip_if_past=True)
