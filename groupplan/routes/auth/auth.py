from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from groupplan.core.database import get_db
from groupplan.dependencies.services import get_invitation_service
from groupplan.schemas.user.user import RegisterResponse, UserCreate, UserOut
from groupplan.services.auth.account_service import register_user
from groupplan.services.trips.invite_service import InvitationService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    invitation_service: InvitationService = Depends(get_invitation_service),
):
    user, promoted = await register_user(db, user_data, invitation_service)
    return RegisterResponse(user=UserOut.model_validate(user), invitations_promoted=promoted)
