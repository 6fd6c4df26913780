"""
Authentication API endpoints
用户认证API端点
"""

from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.database import get_db
from guesswho.services.auth import auth_service
from guesswho.schemas.user import UserCreate, UserLogin, UserResponse, UserToken
from guesswho.models.user import User

router = APIRouter()
# auto_error=False: a missing header is reported as Unauthorized (401), not 403
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> User:
    """Dependency to get current authenticated user"""
    token = credentials.credentials if credentials else None
    return await auth_service.get_current_user(db, token)


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db)
):
    """
    用户注册
    Username and email must be unused.
    """
    return await auth_service.register_user(db, user_data)


@router.post("/login", response_model=UserToken)
async def login(
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db)
):
    """用户登录，返回 Bearer 令牌"""
    return await auth_service.login_user(db, login_data)


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """当前用户信息"""
    return UserResponse.model_validate(current_user)
