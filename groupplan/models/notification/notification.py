from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, JSON, Boolean, Text
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum


class NotificationType(str, enum.Enum):
    TRIP_INVITATION = "TRIP_INVITATION"
    SURVEY_REMINDER = "SURVEY_REMINDER"
    VOTE_REMINDER = "VOTE_REMINDER"
    TRIP_UPDATE = "TRIP_UPDATE"


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(Enum(NotificationType, name="notification_type"), nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    read = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)
