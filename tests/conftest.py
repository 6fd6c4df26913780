"""
Pytest configuration and fixtures
测试配置和固件
"""

import random
import uuid
from typing import List

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

from guesswho.core.database import Base, get_db
from guesswho.main import app
import guesswho.models  # noqa: F401
from guesswho.models.user import User
from guesswho.schemas.room import RoomCreate
from guesswho.services.auth import auth_service
from guesswho.services.game import GameEngine
from guesswho.services.locks import RoomLockManager
from guesswho.services.room import RoomService
from guesswho.services.word_pack import WordPackService


# Test database URL (in-memory SQLite for fast testing)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
async def test_engine():
    """Fresh in-memory database per test"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory):
    """Test database session with the built-in word packs seeded"""
    async with session_factory() as session:
        await WordPackService(session).seed_default_packs()
        yield session


@pytest.fixture
def room_locks():
    return RoomLockManager()


@pytest.fixture
def room_service(db_session, room_locks):
    return RoomService(db_session, room_locks)


@pytest.fixture
def game_engine(db_session, room_locks):
    return GameEngine(db_session, room_locks, rng=random.Random(42))


@pytest.fixture
def make_user(db_session):
    """Factory creating accounts without paying for bcrypt"""
    async def _make_user(username: str = None) -> User:
        username = username or f"user_{uuid.uuid4().hex[:8]}"
        account = User(
            id=str(uuid.uuid4()),
            username=username,
            email=f"{username}@example.com",
            password_hash="not-a-real-hash",
            is_active=True,
        )
        db_session.add(account)
        await db_session.commit()
        return account

    return _make_user


@pytest.fixture
def make_room(room_service, make_user):
    """Factory creating a room whose host plus ``player_count - 1`` accounts joined"""
    async def _make_room(player_count: int = 3, **room_kwargs):
        users: List[User] = [await make_user(f"p{i}_{uuid.uuid4().hex[:6]}") for i in range(player_count)]
        new_room = await room_service.create_room(RoomCreate(**room_kwargs), users[0])
        for account in users[1:]:
            await room_service.join_room(new_room.room_code, account)
        return new_room, users

    return _make_room


@pytest.fixture
def make_started_room(make_room, game_engine, room_service):
    """Factory returning (room, users, {user_id: player}) after the game started"""
    async def _make_started_room(player_count: int = 4, **room_kwargs):
        new_room, users = await make_room(player_count, **room_kwargs)
        await game_engine.start_game(new_room.room_code, users[0])
        players = await room_service.list_players(new_room)
        by_user = {p.user_id: p for p in players}
        return new_room, users, by_user

    return _make_started_room


@pytest.fixture
async def client(session_factory):
    """HTTP client against the app with get_db bound to the test database"""
    async with session_factory() as session:
        await WordPackService(session).seed_default_packs()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def api_user(session_factory):
    """Factory creating an account and returning (user, auth headers)"""
    async def _api_user(username: str = None):
        username = username or f"api_{uuid.uuid4().hex[:8]}"
        async with session_factory() as session:
            account = User(
                id=str(uuid.uuid4()),
                username=username,
                email=f"{username}@example.com",
                password_hash="not-a-real-hash",
                is_active=True,
            )
            session.add(account)
            await session.commit()
        token = auth_service.create_access_token({"sub": account.id, "username": username})
        return account, {"Authorization": f"Bearer {token}"}

    return _api_user
