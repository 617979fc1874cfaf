from sqlalchemy import Integer, Column, String, ForeignKey, Enum, DateTime, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base
import enum


class InvitationStatus(str, enum.Enum):
    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"
    EXPIRED = "EXPIRED"


class TripInvitation(Base):
    """Invitation addressed to an existing account."""

    __tablename__ = "trip_invitations"

    id = Column(Integer, primary_key=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(InvitationStatus, name="invitation_status"), nullable=False, default=InvitationStatus.PENDING)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    responded_at = Column(DateTime, nullable=True)

    __table_args__ = (
        UniqueConstraint("trip_id", "user_id", name="uq_trip_invitation_user"),
    )

    trip = relationship("Trip", back_populates="invitations")
    user = relationship("User")


class PendingInvitation(Base):
    """Invitation addressed to an email with no account yet."""

    __tablename__ = "pending_invitations"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, nullable=False)
    trip_id = Column(Integer, ForeignKey("trips.id", ondelete="CASCADE"), nullable=False)
    invited_by = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint("email", "trip_id", name="uq_pending_invitation_email_trip"),
        Index("ix_pending_invitations_email", "email"),
    )

    trip = relationship("Trip")
    inviter = relationship("User")
