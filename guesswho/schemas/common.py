"""
Common Pydantic schemas
通用数据验证和序列化模型
"""

from pydantic import BaseModel, Field
from typing import Optional, Any, Dict
from datetime import datetime
from enum import Enum


class ResponseStatus(str, Enum):
    """响应状态枚举"""
    SUCCESS = "success"
    ERROR = "error"


class BaseResponse(BaseModel):
    """基础响应模型"""
    status: ResponseStatus = ResponseStatus.SUCCESS
    message: str = ""
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseResponse):
    """错误响应模型"""
    status: ResponseStatus = ResponseStatus.ERROR
    error_code: str
    error_details: Optional[Dict[str, Any]] = None


class MessageResponse(BaseModel):
    """简单消息响应"""
    message: str = Field(..., description="响应消息")
    success: bool = Field(default=True, description="操作是否成功")
