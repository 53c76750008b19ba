"""
User registration and profile.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from tableserve.core.security import get_current_user
from tableserve.database import get_db
from tableserve.models import User
from tableserve.schemas import UserCreate, UserResponse, UserTokenResponse
from tableserve.services.organizations import register_user

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.post(
    "",
    response_model=UserTokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register User",
)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)) -> UserTokenResponse:
    """Register a dashboard user. The API token is only returned here."""
    user = await register_user(db, data)
    return UserTokenResponse(user=UserResponse.model_validate(user), api_token=user.api_token)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)) -> User:
    return user
