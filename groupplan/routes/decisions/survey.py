from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from groupplan.core.database import get_db
from groupplan.dependencies.auth import get_current_user
from groupplan.dependencies.services import get_survey_service
from groupplan.models.user.user import User
from groupplan.schemas.decisions.survey import (
    SurveyCreate,
    SurveyCreateResponse,
    SurveyDetail,
    SurveySubmit,
    SurveySubmitResult,
)
from groupplan.services.decisions.survey_service import SurveyService

router = APIRouter(prefix="/trips/{trip_id}/survey", tags=["Trip Survey"])


@router.post("", response_model=SurveyCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_survey(
    trip_id: int,
    payload: SurveyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    survey_service: SurveyService = Depends(get_survey_service),
):
    return await survey_service.create_survey(db, trip_id, current_user, payload)


@router.get("", response_model=SurveyDetail)
async def get_survey(
    trip_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    survey_service: SurveyService = Depends(get_survey_service),
):
    return await survey_service.get_survey(db, trip_id, current_user)


@router.put("", response_model=SurveySubmitResult)
async def submit_survey_response(
    trip_id: int,
    payload: SurveySubmit,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(get_current_user),
    survey_service: SurveyService = Depends(get_survey_service),
):
    return await survey_service.submit_response(db, trip_id, current_user, payload.answers)
