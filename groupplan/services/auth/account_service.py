from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from typing import Optional, Tuple
from groupplan.core.config import settings
from groupplan.core.errors import AlreadyExistsError, ValidationError
from groupplan.core.logger import logger
from groupplan.core.security import hash_password
from groupplan.models.user.user import User
from groupplan.schemas.user.user import UserCreate


async def find_account_by_email(db: AsyncSession, email: str) -> Optional[int]:
    return await db.scalar(select(User.id).where(User.email == email.strip().lower()))


async def register_user(db: AsyncSession, user_data: UserCreate, invitation_service) -> Tuple[User, int]:
    """Create an account, then promote the pending invitations addressed to its email.

    Promotion problems are logged; they never fail the registration.
    """
    email = user_data.email.strip().lower()

    if await find_account_by_email(db, email) is not None:
        raise AlreadyExistsError("An account with this email already exists")

    result = await db.execute(select(User).where(User.username == user_data.username))
    if result.scalar():
        raise AlreadyExistsError("Username already taken")

    if len(user_data.password) < settings.PASSWORD_MIN_LENGTH:
        raise ValidationError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters")

    new_user = User(
        email=email,
        username=user_data.username,
        name=user_data.name,
        hashed_password=hash_password(user_data.password),
    )
    db.add(new_user)
    try:
        await db.commit()
        await db.refresh(new_user)
    except IntegrityError:
        # race between the lookups above and a concurrent registration
        await db.rollback()
        raise AlreadyExistsError("Email or username already exists")

    user_id = new_user.id
    promoted = 0
    try:
        promoted = await invitation_service.promote_pending(db, email, user_id)
    except SQLAlchemyError:
        await db.rollback()
        logger.error(f"Failed to process pending invitations for user {user_id}", exc_info=True)
        await db.refresh(new_user)

    logger.info(f"User {user_id} registered, {promoted} invitation(s) promoted")
    return new_user, promoted
