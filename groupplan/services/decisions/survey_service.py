from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError
from datetime import timedelta
from typing import Any, Dict, Optional
from groupplan.core.clock import Clock, utcnow
from groupplan.core.errors import AlreadyExistsError, NotActiveError, NotFoundError
from groupplan.core.logger import logger
from groupplan.models.decisions.survey import TripSurvey, SurveyResponse, SurveyStatus
from groupplan.models.notification.notification import NotificationType
from groupplan.models.user.user import User
from groupplan.schemas.decisions.survey import (
    SurveyCreate,
    SurveyCreateResponse,
    SurveyDetail,
    SurveyOut,
    SurveyResponseOut,
    SurveySubmitResult,
)
from groupplan.services.decisions.survey_answers import validate_answers
from groupplan.services.notifications.notification_service import NotificationService
from groupplan.services.trips.lifecycle_service import TripLifecycleService
from groupplan.services.trips.trip_member_service import (
    count_members,
    get_trip,
    require_member,
    require_organizer,
)


class SurveyService:
    """
    One survey per trip: ACTIVE until every member has answered, then CLOSED
    for good. Submissions upsert the member's answers, recount respondents and
    close within one transaction holding the survey row.
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

    async def create_survey(
        self,
        db: AsyncSession,
        trip_id: int,
        current_user: User,
        survey_data: SurveyCreate,
    ) -> SurveyCreateResponse:
        await get_trip(db, trip_id)
        await require_organizer(db, trip_id, current_user.id, "create survey")

        existing = await db.scalar(select(TripSurvey.id).where(TripSurvey.trip_id == trip_id))
        if existing is not None:
            raise AlreadyExistsError("Survey already exists for this trip")

        survey = TripSurvey(
            trip_id=trip_id,
            title=survey_data.title,
            questions=[q.model_dump(mode="json") for q in survey_data.questions],
            status=SurveyStatus.ACTIVE,
            expires_at=self._clock() + timedelta(hours=survey_data.expiration_hours),
        )
        db.add(survey)
        try:
            await db.flush()
        except IntegrityError:
            await db.rollback()
            raise AlreadyExistsError("Survey already exists for this trip")

        status_update = await self.lifecycle.on_survey_created(db, trip_id)
        await self.notifier.notify_members(
            db,
            trip_id,
            NotificationType.SURVEY_REMINDER,
            "New Survey",
            "A new survey has been created for your trip. Please respond!",
            {"trip_id": trip_id, "survey_id": survey.id},
            exclude_user_id=current_user.id,
        )
        await db.commit()

        logger.info(f"Survey {survey.id} opened on trip {trip_id} by user {current_user.id}")
        return SurveyCreateResponse(survey=SurveyOut.model_validate(survey), status_update=status_update)

    async def get_survey(self, db: AsyncSession, trip_id: int, current_user: User) -> SurveyDetail:
        await require_member(db, trip_id, current_user.id)

        survey = await db.scalar(select(TripSurvey).where(TripSurvey.trip_id == trip_id))
        if survey is None:
            raise NotFoundError("No survey found for this trip")

        response_count = await self._count_respondents(db, survey.id)
        member_count = await count_members(db, trip_id)
        own = await db.scalar(
            select(SurveyResponse).where(
                SurveyResponse.survey_id == survey.id,
                SurveyResponse.user_id == current_user.id,
            )
        )

        return SurveyDetail(
            **SurveyOut.model_validate(survey).model_dump(),
            response_count=response_count,
            member_count=member_count,
            has_responded=own is not None,
            user_answers=own.answers if own else None,
        )

    async def submit_response(
        self,
        db: AsyncSession,
        trip_id: int,
        current_user: User,
        answers: Dict[str, Any],
    ) -> SurveySubmitResult:
        await require_member(db, trip_id, current_user.id)

        survey = await db.scalar(
            select(TripSurvey).where(TripSurvey.trip_id == trip_id).with_for_update()
        )
        if survey is None:
            raise NotFoundError("No survey found")
        if survey.status != SurveyStatus.ACTIVE:
            raise NotActiveError("Survey is not active")

        normalized = validate_answers(survey.questions, answers)

        response = await db.scalar(
            select(SurveyResponse).where(
                SurveyResponse.survey_id == survey.id,
                SurveyResponse.user_id == current_user.id,
            )
        )
        if response is None:
            response = SurveyResponse(survey_id=survey.id, user_id=current_user.id, answers=normalized)
            db.add(response)
        else:
            response.answers = normalized
        await db.flush()

        response_count = await self._count_respondents(db, survey.id)
        member_count = await count_members(db, trip_id)
        closed_now = False
        if response_count >= member_count:
            closed_now = await self._close(db, survey.id)
        await db.commit()

        if closed_now:
            logger.info(f"Survey {survey.id} closed: {response_count}/{member_count} members responded")

        return SurveySubmitResult(
            response=SurveyResponseOut.model_validate(response),
            survey_status=SurveyStatus.CLOSED if closed_now else survey.status,
            closed_now=closed_now,
            response_count=response_count,
            member_count=member_count,
        )

    async def _count_respondents(self, db: AsyncSession, survey_id: int) -> int:
        return await db.scalar(
            select(func.count(func.distinct(SurveyResponse.user_id))).where(
                SurveyResponse.survey_id == survey_id
            )
        )

    async def _close(self, db: AsyncSession, survey_id: int) -> bool:
        """Close the survey if still active; True only for the call that closed it."""
        result = await db.execute(
            update(TripSurvey)
            .where(TripSurvey.id == survey_id, TripSurvey.status == SurveyStatus.ACTIVE)
            .values(status=SurveyStatus.CLOSED, closed_at=self._clock())
            .execution_options(synchronize_session="evaluate")
        )
        return result.rowcount == 1
