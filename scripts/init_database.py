#!/usr/bin/env python3
"""
数据库初始化脚本
创建表结构并写入内置词包

Usage: python scripts/init_database.py [DATABASE_URL]
"""

import asyncio
import sys
from pathlib import Path

# 添加项目根目录到路径
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from guesswho.core.config import settings  # noqa: E402
from guesswho.core.database import init_db, close_db  # noqa: E402
from guesswho.services.word_pack import WordPackService  # noqa: E402


async def main(database_url: str) -> int:
    print(f"初始化数据库: {database_url}")
    manager = await init_db(database_url)
    try:
        async with manager.get_session() as session:
            added = await WordPackService(session).seed_default_packs()
        print(f"表结构已就绪，新增内置词包 {added} 个")
    finally:
        await close_db(manager)
    return 0


if __name__ == "__main__":
    url = sys.argv[1] if len(sys.argv) > 1 else settings.DATABASE_URL
    sys.exit(asyncio.run(main(url)))
