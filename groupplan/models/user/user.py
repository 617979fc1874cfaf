from sqlalchemy import Column, String, Integer, DateTime
from sqlalchemy.orm import relationship
from groupplan.core.clock import utcnow
from groupplan.core.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    username = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=True)
    hashed_password = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    owned_trips = relationship("Trip", back_populates="owner")
    memberships = relationship("TripMember", back_populates="user", cascade="all, delete")
