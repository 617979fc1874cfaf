from sqlalchemy import Column, Integer, String, ForeignKey, Enum, DateTime
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum


class TripStatus(str, enum.Enum):
    PLANNING = "PLANNING"
    INVITING = "INVITING"
    SURVEYING = "SURVEYING"
    VOTING = "VOTING"
    BOOKED = "BOOKED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# forward order of the planning lifecycle; CANCELLED sits outside it
TRIP_STATUS_ORDER = [
    TripStatus.PLANNING,
    TripStatus.INVITING,
    TripStatus.SURVEYING,
    TripStatus.VOTING,
    TripStatus.BOOKED,
    TripStatus.IN_PROGRESS,
    TripStatus.COMPLETED,
]


class Trip(Base):
    __tablename__ = "trips"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    owner_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    status = Column(Enum(TripStatus, name="trip_status"), nullable=False, default=TripStatus.PLANNING)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    owner = relationship("User", back_populates="owned_trips")
    members = relationship("TripMember", back_populates="trip", cascade="all, delete")
    invitations = relationship("TripInvitation", back_populates="trip", cascade="all, delete")
