from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from groupplan.core.database import get_db
from groupplan.dependencies.auth import get_current_user
from groupplan.dependencies.rate_limit import invite_rate_limit
from groupplan.dependencies.services import get_invitation_service
from groupplan.models.user.user import User
from groupplan.schemas.trip.invite import (
    InvitationRespond,
    InvitationRespondResponse,
    InviteRequest,
    InviteResponse,
    TripInvitationOut,
)
from groupplan.services.trips.invite_service import InvitationService

router = APIRouter(tags=["Trip Invitations"])


@router.post(
    "/trips/{trip_id}/invitations",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(invite_rate_limit)],
)
async def send_invitations(
    trip_id: int,
    payload: InviteRequest,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    return await invitation_service.invite(db, trip_id, current_user, payload.emails, payload.expiration_hours)


@router.get("/trips/{trip_id}/invitations", response_model=list[TripInvitationOut])
async def list_trip_invitations(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    return await invitation_service.list_trip_invitations(db, trip_id, current_user)


@router.get("/invitations", response_model=list[TripInvitationOut])
async def list_my_invitations(
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    return await invitation_service.list_user_invitations(db, current_user)


@router.post("/invitations/{invitation_id}/respond", response_model=InvitationRespondResponse)
async def respond_to_invitation(
    invitation_id: int,
    payload: InvitationRespond,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    invitation, message = await invitation_service.respond(db, invitation_id, current_user, payload.action)
    return InvitationRespondResponse(invitation=TripInvitationOut.model_validate(invitation), message=message)
