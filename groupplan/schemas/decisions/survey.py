from pydantic import BaseModel, Field, model_validator
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from datetime import date, datetime
from groupplan.core.config import settings
from groupplan.models.decisions.survey import SurveyStatus
from groupplan.schemas.common import AdvisoryUpdate


class QuestionBase(BaseModel):
    id: str = Field(min_length=1)
    question: str = Field(min_length=1)
    description: Optional[str] = None
    required: bool = True


class ChoiceQuestion(QuestionBase):
    type: Literal["single_choice", "multiple_choice", "ranking"]
    options: List[str] = Field(min_length=1)


class NumericQuestion(QuestionBase):
    type: Literal["scale", "budget"]
    min: Optional[float] = None
    max: Optional[float] = None
    step: Optional[float] = None

    @model_validator(mode="after")
    def check_bounds(self):
        if self.min is not None and self.max is not None and self.min > self.max:
            raise ValueError("min must not exceed max")
        return self


class TextQuestion(QuestionBase):
    type: Literal["text"]


class DateRangeQuestion(QuestionBase):
    type: Literal["date_range"]


SurveyQuestion = Annotated[
    Union[ChoiceQuestion, NumericQuestion, TextQuestion, DateRangeQuestion],
    Field(discriminator="type"),
]


class DateRangeAnswer(BaseModel):
    start: date
    end: date


class SurveyCreate(BaseModel):
    title: str = Field(min_length=1)
    questions: List[SurveyQuestion] = Field(min_length=1)
    expiration_hours: int = Field(
        default=settings.SURVEY_TTL_HOURS, ge=1, le=settings.DECISION_TTL_MAX_HOURS
    )

    @model_validator(mode="after")
    def unique_question_ids(self):
        ids = [q.id for q in self.questions]
        if len(ids) != len(set(ids)):
            raise ValueError("question ids must be unique")
        return self


class SurveySubmit(BaseModel):
    # values are checked per question type in survey_answers
    answers: Dict[str, Any]


class SurveyOut(BaseModel):
    id: int
    trip_id: int
    title: str
    status: SurveyStatus
    questions: List[SurveyQuestion]
    expires_at: datetime
    created_at: datetime
    closed_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SurveyCreateResponse(BaseModel):
    survey: SurveyOut
    status_update: AdvisoryUpdate


class SurveyDetail(SurveyOut):
    response_count: int
    member_count: int
    has_responded: bool
    user_answers: Optional[dict] = None


class SurveyResponseOut(BaseModel):
    id: int
    survey_id: int
    user_id: int
    answers: dict
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SurveySubmitResult(BaseModel):
    response: SurveyResponseOut
    survey_status: SurveyStatus
    closed_now: bool
    response_count: int
    member_count: int
