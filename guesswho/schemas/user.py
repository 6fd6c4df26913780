"""
User Pydantic schemas
用户数据验证和序列化模型
"""

from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import re


class UserBase(BaseModel):
    """Base user schema with common fields"""
    username: str = Field(..., min_length=3, max_length=50, description="用户名")
    email: str = Field(..., description="邮箱地址")

    @field_validator('username')
    @classmethod
    def validate_username(cls, v):
        """验证用户名格式"""
        if not re.match(r'^[a-zA-Z0-9_\u4e00-\u9fa5]+$', v):
            raise ValueError('username may only contain letters, digits and underscores')
        return v

    @field_validator('email')
    @classmethod
    def validate_email(cls, v):
        """验证邮箱格式"""
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v):
            raise ValueError('invalid email address')
        return v.lower()


class UserCreate(UserBase):
    """User creation schema"""
    password: str = Field(..., min_length=8, max_length=128, description="密码")

    @field_validator('password')
    @classmethod
    def validate_password(cls, v):
        """验证密码强度"""
        if not re.search(r'[A-Za-z]', v):
            raise ValueError('password must contain at least one letter')
        if not re.search(r'\d', v):
            raise ValueError('password must contain at least one digit')
        return v


class UserLogin(BaseModel):
    """User login schema"""
    username: str = Field(..., description="用户名或邮箱")
    password: str = Field(..., description="密码")


class UserResponse(UserBase):
    """User response schema"""
    id: str
    is_active: bool = True
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserToken(BaseModel):
    """Token response schema"""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="有效期(秒)")
    user: UserResponse
