"""
Authentication service handling user registration, login and role lookup.

Roles are assigned explicitly: every account gets `user`; `admin` is granted
only to emails listed in the ADMIN_EMAILS setting.
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from fastapi import HTTPException, status

from slotbook.models.user import AppRole, User, UserRole
from slotbook.schemas.user import UserCreate, UserLogin
from slotbook.core.config import get_settings
from slotbook.core.security import hash_password, verify_password, create_access_token
from slotbook.core.logging import get_logger

logger = get_logger(__name__)
settings = get_settings()


async def register_user(db: AsyncSession, user_data: UserCreate) -> User:
    """
    Register a new user with hashed password and initial roles.
    Raises 409 if email or username already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="email_exists", email=user_data.email)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already registered",
        )

    result = await db.execute(select(User).where(User.username == user_data.username))
    if result.scalar_one_or_none():
        logger.warning("registration_failed", reason="username_exists", username=user_data.username)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Username already taken",
        )

    roles = [AppRole.USER]
    if user_data.email.lower() in settings.admin_emails:
        roles.append(AppRole.ADMIN)

    user = User(
        email=user_data.email,
        username=user_data.username,
        hashed_password=hash_password(user_data.password),
        roles=[UserRole(role=role.value) for role in roles],
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("user_registered", user_id=user.id, email=user.email, roles=[r.value for r in roles])
    return user


async def authenticate_user(db: AsyncSession, login_data: UserLogin) -> str:
    """
    Authenticate user and return JWT access token.
    Raises 401 if credentials are invalid.
    """
    result = await db.execute(select(User).where(User.email == login_data.email))
    user = result.scalar_one_or_none()

    if not user or not verify_password(login_data.password, user.hashed_password):
        logger.warning("login_failed", email=login_data.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Account is deactivated",
        )

    token = create_access_token(data={"sub": str(user.id)})
    logger.info("user_logged_in", user_id=user.id)
    return token


async def get_user(db: AsyncSession, user_id: int) -> User:
    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown or inactive user",
        )
    return user


async def has_role(db: AsyncSession, user_id: int, role: AppRole) -> bool:
    result = await db.execute(
        select(UserRole.id).where(UserRole.user_id == user_id, UserRole.role == role.value)
    )
    return result.first() is not None


async def get_roles(db: AsyncSession, user_id: int) -> list[str]:
    result = await db.execute(select(UserRole.role).where(UserRole.user_id == user_id))
    return sorted(result.scalars().all())
