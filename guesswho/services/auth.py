"""
Authentication service
用户认证服务

Accounts sit outside the game core: the core only ever receives an already
verified ``User``. Passwords are hashed with bcrypt, tokens are HS256 JWTs.
"""

from datetime import timedelta
from typing import Optional
import uuid
import logging
import bcrypt

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from jose import JWTError, jwt

from guesswho.core.config import settings
from guesswho.core.database import utcnow
from guesswho.core.exceptions import AccountExists, Unauthorized
from guesswho.models.user import User
from guesswho.schemas.user import UserCreate, UserLogin, UserResponse, UserToken

logger = logging.getLogger(__name__)


class AuthService:
    """Authentication service for user registration, login and token checks"""

    def hash_password(self, password: str) -> str:
        """Hash password using bcrypt directly"""
        # bcrypt has a 72-byte limit
        password_bytes = password.encode('utf-8')[:72]
        salt = bcrypt.gensalt()
        return bcrypt.hashpw(password_bytes, salt).decode('utf-8')

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        """Verify password against hash"""
        try:
            password_bytes = plain_password.encode('utf-8')[:72]
            return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
        except ValueError:
            # malformed stored hash
            return False

    def create_access_token(self, data: dict, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token"""
        to_encode = data.copy()
        expire = utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
        to_encode.update({"exp": expire})
        return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    def verify_token(self, token: str) -> Optional[dict]:
        """Verify JWT token and return payload"""
        try:
            return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        except JWTError:
            return None

    async def register_user(self, db: AsyncSession, user_data: UserCreate) -> UserResponse:
        """
        注册新用户
        Username and email must both be unused.
        """
        stmt = select(User).where(User.username == user_data.username)
        result = await db.execute(stmt)
        if result.scalar_one_or_none():
            raise AccountExists("Username already exists")

        stmt = select(User).where(User.email == user_data.email)
        result = await db.execute(stmt)
        if result.scalar_one_or_none():
            raise AccountExists("Email already registered")

        db_user = User(
            id=str(uuid.uuid4()),
            username=user_data.username,
            email=user_data.email,
            password_hash=self.hash_password(user_data.password),
            is_active=True,
        )
        db.add(db_user)
        await db.commit()
        await db.refresh(db_user)

        logger.info(f"User registered successfully: {user_data.username}")
        return UserResponse.model_validate(db_user)

    async def authenticate_user(self, db: AsyncSession, login_data: UserLogin) -> Optional[User]:
        """Authenticate user with username/email and password"""
        stmt = select(User).where(
            (User.username == login_data.username) |
            (User.email == login_data.username.lower())
        )
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()

        if not user or not user.is_active:
            return None
        if not self.verify_password(login_data.password, user.password_hash):
            return None
        return user

    async def login_user(self, db: AsyncSession, login_data: UserLogin) -> UserToken:
        """登录并签发访问令牌"""
        user = await self.authenticate_user(db, login_data)
        if not user:
            logger.warning(f"Failed login for {login_data.username}")
            raise Unauthorized("Invalid username or password")

        user.last_login = utcnow()
        await db.commit()

        access_token = self.create_access_token(
            data={"sub": user.id, "username": user.username},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

        logger.info(f"User logged in successfully: {user.username}")
        return UserToken(
            access_token=access_token,
            token_type="bearer",
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserResponse.model_validate(user),
        )

    async def get_current_user(self, db: AsyncSession, token: Optional[str]) -> User:
        """Resolve a bearer token to an active account, or raise Unauthorized"""
        if not token:
            raise Unauthorized("Not authenticated")

        payload = self.verify_token(token)
        if payload is None:
            logger.warning("Token verification failed")
            raise Unauthorized("Invalid or expired token")

        user_id = payload.get("sub")
        if user_id is None:
            raise Unauthorized("Invalid token payload")

        result = await db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None or not user.is_active:
            logger.warning(f"User not found or inactive: {user_id}")
            raise Unauthorized("User not found or inactive")
        return user


# Global auth service instance
auth_service = AuthService()
