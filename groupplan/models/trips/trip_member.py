from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum
import sqlalchemy as sa


class TripRole(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


# roles allowed to invite and to open surveys or voting sessions
ORGANIZER_ROLES = (TripRole.OWNER, TripRole.ADMIN)


class TripMember(Base):
    __tablename__ = "trip_members"

    id = Column(Integer, primary_key=True, index=True)

    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role = Column(sa.Enum(TripRole, name="trip_role"), nullable=False, default=TripRole.MEMBER)
    joined_at = Column(DateTime, default=utcnow)

    # one membership per user per trip; also the quorum denominator
    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_trip_user"),
    )

    trip = relationship("Trip", back_populates="members")
    user = relationship("User", back_populates="memberships")
