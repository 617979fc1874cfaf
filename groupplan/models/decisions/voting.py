from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Enum, JSON, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum


class VotingType(str, enum.Enum):
    DESTINATION = "DESTINATION"
    ACTIVITY = "ACTIVITY"
    DATE = "DATE"
    ACCOMMODATION = "ACCOMMODATION"
    CUSTOM = "CUSTOM"


class VotingStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"


class VotingSession(Base):
    __tablename__ = "voting_sessions"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    type = Column(Enum(VotingType, name="voting_type"), nullable=False)
    title = Column(String, nullable=False)
    status = Column(Enum(VotingStatus, name="voting_status"), nullable=False, default=VotingStatus.ACTIVE)
    options = Column(JSON, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    closed_at = Column(DateTime, nullable=True)

    trip = relationship("Trip", backref="voting_sessions")
    votes = relationship("Vote", back_populates="session", cascade="all, delete")

    __table_args__ = (
        Index("ix_voting_sessions_trip_id", "trip_id"),
    )


class Vote(Base):
    __tablename__ = "votes"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(Integer, ForeignKey("voting_sessions.id", ondelete="CASCADE"), nullable=False)
    voter_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    option_id = Column(String, nullable=False)
    rank = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # a voter may pick several options; participation is distinct voter_id
    __table_args__ = (
        UniqueConstraint("session_id", "voter_id", "option_id", name="uq_vote_session_voter_option"),
        Index("ix_votes_session_id", "session_id"),
    )

    session = relationship("VotingSession", back_populates="votes")
    voter = relationship("User")
