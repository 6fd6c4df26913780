"""
Word pack catalog service
词包目录服务
"""

import uuid
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.exceptions import NotFound, ValidationError
from guesswho.models.word_pack import WordPack
from guesswho.schemas.word_pack import WordPackCreate, WordPackType, WordPackDifficulty
from guesswho.services.rules import validate_word_pairs

logger = logging.getLogger(__name__)


DEFAULT_WORD_PACKS = [
    {
        "id": "general-pack",
        "title": "General Pack",
        "description": "Basic words for everyday gameplay",
        "content": [
            {"civilian": "Apple", "undercover": "Orange"},
            {"civilian": "Cat", "undercover": "Dog"},
            {"civilian": "Coffee", "undercover": "Tea"},
            {"civilian": "Summer", "undercover": "Winter"},
            {"civilian": "Book", "undercover": "Magazine"},
            {"civilian": "Car", "undercover": "Bike"},
            {"civilian": "Pizza", "undercover": "Burger"},
            {"civilian": "Ocean", "undercover": "Lake"},
        ],
    },
    {
        "id": "indian-culture",
        "title": "Indian Culture",
        "description": "Words related to Indian culture and traditions",
        "content": [
            {"civilian": "Dosa", "undercover": "Idli"},
            {"civilian": "Bollywood", "undercover": "Hollywood"},
            {"civilian": "Cricket", "undercover": "Football"},
            {"civilian": "Holi", "undercover": "Diwali"},
            {"civilian": "Taj Mahal", "undercover": "Red Fort"},
            {"civilian": "Biryani", "undercover": "Pulao"},
            {"civilian": "Sari", "undercover": "Lehenga"},
        ],
    },
    {
        "id": "technology",
        "title": "Technology",
        "description": "Modern technology and gadgets",
        "content": [
            {"civilian": "iPhone", "undercover": "Android"},
            {"civilian": "Netflix", "undercover": "YouTube"},
            {"civilian": "Instagram", "undercover": "TikTok"},
            {"civilian": "Tesla", "undercover": "BMW"},
            {"civilian": "Zoom", "undercover": "Teams"},
            {"civilian": "WhatsApp", "undercover": "Telegram"},
            {"civilian": "Google", "undercover": "Bing"},
        ],
    },
]


class WordPackService:
    """词包服务类"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def seed_default_packs(self) -> int:
        """Insert the built-in packs that are missing; returns how many were added"""
        result = await self.db.execute(select(WordPack.id))
        existing = set(result.scalars().all())

        added = 0
        for pack in DEFAULT_WORD_PACKS:
            if pack["id"] in existing:
                continue
            self.db.add(WordPack(
                id=pack["id"],
                title=pack["title"],
                description=pack["description"],
                type=WordPackType.CURATED,
                difficulty=WordPackDifficulty.MEDIUM,
                language="en",
                content=[dict(pair) for pair in pack["content"]],
                is_public=True,
            ))
            added += 1

        if added:
            await self.db.commit()
            logger.info(f"Seeded {added} built-in word packs")
        return added

    async def list_public_packs(self) -> List[WordPack]:
        """Public packs, newest first"""
        stmt = (
            select(WordPack)
            .where(WordPack.is_public.is_(True))
            .order_by(WordPack.created_at.desc(), WordPack.id)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_pack(self, pack_id: str) -> Optional[WordPack]:
        result = await self.db.execute(select(WordPack).where(WordPack.id == pack_id))
        return result.scalar_one_or_none()

    async def get_pack(self, pack_id: str, viewer_id: Optional[str] = None) -> WordPack:
        """Resolve a pack visible to the viewer: public, or owned by them"""
        pack = await self.find_pack(pack_id)
        if pack is None or (not pack.is_public and pack.owner_id != viewer_id):
            raise NotFound(f"Word pack {pack_id} not found")
        return pack

    async def admit_pack(self, pack_data: WordPackCreate, owner_id: str) -> WordPack:
        """
        Admit an externally produced pack after validating its shape
        接收自定义 / AI 生成 / 社区词包
        """
        if pack_data.type == WordPackType.CURATED:
            raise ValidationError("Curated packs are built in and cannot be submitted")

        pairs = validate_word_pairs(pack_data.content)
        is_public = pack_data.is_public
        if is_public is None:
            is_public = pack_data.type == WordPackType.COMMUNITY

        pack = WordPack(
            id=str(uuid.uuid4()),
            title=pack_data.title.strip(),
            description=pack_data.description,
            type=pack_data.type,
            difficulty=pack_data.difficulty,
            language=pack_data.language,
            content=pairs,
            is_public=is_public,
            owner_id=owner_id,
        )
        self.db.add(pack)
        await self.db.commit()

        logger.info(f"Admitted {pack.type.value} word pack {pack.id} with {len(pairs)} pairs from {owner_id}")
        return pack
