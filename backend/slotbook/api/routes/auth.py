"""
Authentication endpoints: register, login and the current account.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from slotbook.db.session import get_db
from slotbook.schemas.user import CurrentUserResponse, Token, UserCreate, UserLogin, UserResponse
from slotbook.services.auth_service import authenticate_user, get_roles, get_user, register_user
from slotbook.core.security import get_current_user_id

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Register a new user account."""
    user = await register_user(db, user_data)
    return user


@router.post("/login", response_model=Token)
async def login(login_data: UserLogin, db: AsyncSession = Depends(get_db)):
    """Authenticate and receive a JWT access token."""
    token = await authenticate_user(db, login_data)
    return Token(access_token=token)


@router.get("/me", response_model=CurrentUserResponse)
async def me(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """The authenticated account with its roles."""
    user = await get_user(db, user_id)
    return CurrentUserResponse(
        **UserResponse.model_validate(user).model_dump(),
        roles=await get_roles(db, user_id),
    )
