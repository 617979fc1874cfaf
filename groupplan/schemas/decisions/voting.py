from pydantic import BaseModel, Field, model_validator
from typing import Any, Dict, List, Optional
from datetime import datetime
from groupplan.core.config import settings
from groupplan.models.decisions.voting import VotingStatus, VotingType
from groupplan.schemas.common import AdvisoryUpdate


class VotingOption(BaseModel):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: Optional[str] = None
    image_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None


class VotingSessionCreate(BaseModel):
    type: VotingType
    title: str = Field(min_length=1)
    options: List[VotingOption] = Field(min_length=1)
    expiration_hours: int = Field(
        default=settings.VOTING_TTL_HOURS, ge=1, le=settings.DECISION_TTL_MAX_HOURS
    )


class VoteCast(BaseModel):
    session_id: int
    option_id: str = Field(min_length=1)
    rank: Optional[int] = Field(default=None, ge=1)


class VoteOut(BaseModel):
    id: int
    session_id: int
    voter_id: int
    option_id: str
    rank: Optional[int] = None

    model_config = {"from_attributes": True}


class OptionResult(BaseModel):
    option_id: str
    title: str
    votes: int
    percentage: int


class VotingTally(BaseModel):
    session_id: int
    status: VotingStatus
    expired: bool
    total_votes: int
    voter_count: int
    results: List[OptionResult]


class VotingSessionOut(BaseModel):
    id: int
    trip_id: int
    type: VotingType
    title: str
    status: VotingStatus
    options: List[VotingOption]
    expires_at: datetime
    created_at: datetime
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class VotingSessionCreateResponse(BaseModel):
    session: VotingSessionOut
    status_update: AdvisoryUpdate


class VotingSessionSummary(VotingSessionOut):
    tally: VotingTally
    user_votes: List[str]


class CastVoteResult(BaseModel):
    vote: VoteOut
    session_status: VotingStatus
    closed_now: bool
    voter_count: int
    member_count: int
