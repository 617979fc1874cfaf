from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum


class SurveyStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class TripSurvey(Base):
    __tablename__ = "trip_surveys"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), unique=True, nullable=False)
    title = Column(String, nullable=False)
    status = Column(Enum(SurveyStatus, name="survey_status"), nullable=False, default=SurveyStatus.ACTIVE)
    questions = Column(JSON, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    closed_at = Column(DateTime, nullable=True)

    trip = relationship("Trip", backref="survey")
    responses = relationship("SurveyResponse", back_populates="survey", cascade="all, delete")


class SurveyResponse(Base):
    __tablename__ = "survey_responses"

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("trip_surveys.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    answers = Column(JSON, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("survey_id", "user_id", name="uq_survey_response_user"),
    )

    survey = relationship("TripSurvey", back_populates="responses")
    user = relationship("User")
