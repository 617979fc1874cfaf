from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import List, Literal, Optional
from datetime import datetime
from enum import Enum
from groupplan.core.config import settings
from groupplan.models.trips.trip_invitation import InvitationStatus
from groupplan.schemas.common import AdvisoryUpdate


class InviteRequest(BaseModel):
    emails: List[EmailStr] = Field(min_length=1)
    expiration_hours: int = Field(
        default=settings.INVITE_TTL_HOURS, ge=1, le=settings.INVITE_TTL_MAX_HOURS
    )

    @field_validator("emails")
    @classmethod
    def dedupe_emails(cls, emails: List[str]) -> List[str]:
        seen = []
        for email in emails:
            normalized = email.strip().lower()
            if normalized not in seen:
                seen.append(normalized)
        return seen


class InviteOutcome(str, Enum):
    INVITED = "INVITED"
    REFRESHED = "REFRESHED"
    ALREADY_MEMBER = "ALREADY_MEMBER"
    PENDING_CREATED = "PENDING_CREATED"
    PENDING_REFRESHED = "PENDING_REFRESHED"


# outcomes that count as a successful invitation for the trip status
SUCCESSFUL_OUTCOMES = {
    InviteOutcome.INVITED,
    InviteOutcome.REFRESHED,
    InviteOutcome.PENDING_CREATED,
    InviteOutcome.PENDING_REFRESHED,
}


class EmailDelivery(str, Enum):
    SENT = "email_sent"
    FAILED = "email_failed"
    PENDING = "email_pending"


class InviteResult(BaseModel):
    email: str
    outcome: InviteOutcome
    invitation_id: Optional[int] = None
    user_id: Optional[int] = None
    expires_at: Optional[datetime] = None
    email_status: Optional[EmailDelivery] = None
    message: Optional[str] = None


class InviteError(BaseModel):
    email: str
    error: str


class InviteResponse(BaseModel):
    invitations: List[InviteResult]
    errors: List[InviteError]
    status_update: Optional[AdvisoryUpdate] = None


class TripInvitationOut(BaseModel):
    id: int
    trip_id: int
    user_id: int
    status: InvitationStatus
    expires_at: datetime
    created_at: datetime

    model_config = {"from_attributes": True}


class InvitationRespond(BaseModel):
    action: Literal["accept", "decline"]


class InvitationRespondResponse(BaseModel):
    invitation: TripInvitationOut
    message: str
