"""
Word pack Pydantic schemas
词包数据验证和序列化模型
"""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from enum import Enum


class WordPackType(str, Enum):
    """词包类型"""
    CURATED = "curated"
    CUSTOM = "custom"
    AI = "ai"
    COMMUNITY = "community"


class WordPackDifficulty(str, Enum):
    """词包难度"""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class WordPairSchema(BaseModel):
    """词对"""
    civilian: str = Field(..., description="平民词")
    undercover: str = Field(..., description="卧底词")


class WordPackCreate(BaseModel):
    """提交词包请求（自定义 / AI 生成 / 社区）"""
    title: str = Field(..., min_length=1, max_length=100, description="词包标题")
    description: Optional[str] = Field(None, max_length=500, description="描述")
    type: WordPackType = Field(default=WordPackType.CUSTOM, description="词包类型")
    difficulty: WordPackDifficulty = Field(default=WordPackDifficulty.MEDIUM, description="难度")
    language: str = Field(default="en", max_length=10, description="语言")
    content: List[WordPairSchema] = Field(default_factory=list, description="词对列表")
    is_public: Optional[bool] = Field(None, description="是否公开，AI 词包默认不公开")


class WordPackSummary(BaseModel):
    """词包列表项"""
    id: str
    title: str
    description: Optional[str] = None
    type: WordPackType
    difficulty: WordPackDifficulty
    language: str
    is_public: bool
    usage_count: int = 0
    pair_count: int = 0
    created_at: datetime

    class Config:
        from_attributes = True


class WordPackResponse(WordPackSummary):
    """词包详情"""
    owner_id: Optional[str] = None
    content: List[WordPairSchema] = Field(default_factory=list)


class WordPackListResponse(BaseModel):
    """公开词包列表"""
    packs: List[WordPackSummary] = Field(default_factory=list)
    total: int = 0
