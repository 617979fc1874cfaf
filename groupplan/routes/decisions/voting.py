from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from groupplan.core.database import get_db
from groupplan.dependencies.auth import get_current_user
from groupplan.dependencies.rate_limit import vote_rate_limit
from groupplan.dependencies.services import get_voting_service
from groupplan.models.user.user import User
from groupplan.schemas.decisions.voting import (
    CastVoteResult,
    VoteCast,
    VotingSessionCreate,
    VotingSessionCreateResponse,
    VotingSessionSummary,
    VotingTally,
)
from groupplan.services.decisions.voting_service import VotingService

router = APIRouter(tags=["Trip Voting"])


@router.post(
    "/trips/{trip_id}/voting",
    response_model=VotingSessionCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_voting_session(
    trip_id: int,
    payload: VotingSessionCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    voting_service: VotingService = Depends(get_voting_service),
):
    return await voting_service.create_session(db, trip_id, current_user, payload)


@router.get("/trips/{trip_id}/voting", response_model=list[VotingSessionSummary])
async def list_voting_sessions(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    voting_service: VotingService = Depends(get_voting_service),
):
    return await voting_service.list_sessions(db, trip_id, current_user)


@router.put(
    "/trips/{trip_id}/voting",
    response_model=CastVoteResult,
    dependencies=[Depends(vote_rate_limit)],
)
async def cast_vote(
    trip_id: int,
    payload: VoteCast,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    voting_service: VotingService = Depends(get_voting_service),
):
    return await voting_service.cast_vote(
        db, payload.session_id, current_user, payload.option_id, payload.rank, trip_id=trip_id
    )


@router.get("/voting/{session_id}/results", response_model=VotingTally)
async def get_voting_results(
    session_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    voting_service: VotingService = Depends(get_voting_service),
):
    return await voting_service.tally(db, session_id, current_user)
