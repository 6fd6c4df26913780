"""
Word pack API endpoints
词包API端点
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.database import get_db
from guesswho.api.v1.endpoints.auth import get_current_user
from guesswho.services.word_pack import WordPackService
from guesswho.models.user import User
from guesswho.schemas.word_pack import (
    WordPackCreate, WordPackListResponse, WordPackResponse, WordPackSummary
)

router = APIRouter()


async def get_word_pack_service(db: AsyncSession = Depends(get_db)) -> WordPackService:
    return WordPackService(db)


@router.get("/", response_model=WordPackListResponse)
async def list_word_packs(
    service: WordPackService = Depends(get_word_pack_service)
):
    """公开词包列表，最新的在前"""
    packs = await service.list_public_packs()
    return WordPackListResponse(
        packs=[WordPackSummary.model_validate(p) for p in packs],
        total=len(packs),
    )


@router.get("/{pack_id}", response_model=WordPackResponse)
async def get_word_pack(
    pack_id: str,
    current_user: User = Depends(get_current_user),
    service: WordPackService = Depends(get_word_pack_service)
):
    """词包详情，私有词包仅所有者可见"""
    pack = await service.get_pack(pack_id, viewer_id=current_user.id)
    return WordPackResponse.model_validate(pack)


@router.post("/", response_model=WordPackResponse, status_code=status.HTTP_201_CREATED)
async def create_word_pack(
    pack_data: WordPackCreate,
    current_user: User = Depends(get_current_user),
    service: WordPackService = Depends(get_word_pack_service)
):
    """
    提交词包
    Each pair needs two distinct non-empty words.
    """
    pack = await service.admit_pack(pack_data, owner_id=current_user.id)
    return WordPackResponse.model_validate(pack)
