from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from typing import Optional
from groupplan.core.errors import NotFoundError, UnauthorizedError
from groupplan.models.trips.trip_model import Trip
from groupplan.models.trips.trip_member import TripMember, TripRole, ORGANIZER_ROLES


async def get_trip(db: AsyncSession, trip_id: int) -> Trip:
    trip = await db.get(Trip, trip_id)
    if trip is None:
        raise NotFoundError("Trip not found")
    return trip


async def get_member_role(db: AsyncSession, trip_id: int, user_id: int) -> Optional[TripRole]:
    return await db.scalar(
        select(TripMember.role).where(
            TripMember.trip_id == trip_id,
            TripMember.user_id == user_id
        )
    )


async def is_user_already_member(db: AsyncSession, trip_id: int, user_id: int) -> bool:
    return await get_member_role(db, trip_id, user_id) is not None


async def count_members(db: AsyncSession, trip_id: int) -> int:
    return await db.scalar(
        select(func.count(TripMember.id)).where(TripMember.trip_id == trip_id)
    )


async def require_member(db: AsyncSession, trip_id: int, user_id: int) -> TripRole:
    role = await get_member_role(db, trip_id, user_id)
    if role is None:
        raise UnauthorizedError("Not a member of this trip")
    return role


async def require_organizer(db: AsyncSession, trip_id: int, user_id: int, action: str) -> TripRole:
    role = await get_member_role(db, trip_id, user_id)
    if role not in ORGANIZER_ROLES:
        raise UnauthorizedError(f"Not authorized to {action}")
    return role


async def add_member(db: AsyncSession, trip_id: int, user_id: int, role: TripRole = TripRole.MEMBER) -> TripMember:
    """Stage a membership row; the caller owns the commit."""
    new_member = TripMember(trip_id=trip_id, user_id=user_id, role=role)
    db.add(new_member)
    await db.flush()
    return new_member
