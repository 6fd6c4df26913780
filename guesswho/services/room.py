"""
Room management service
房间管理服务：房间注册表与玩家名册
"""

import random
import uuid
import logging
from contextlib import asynccontextmanager
from datetime import timedelta
from typing import AsyncIterator, List, Optional

from sqlalchemy import and_, func, select
from sqlalchemy.exc import DisconnectionError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.config import settings
from guesswho.core.database import utcnow
from guesswho.core.exceptions import (
    AlreadyJoined, CapacityExceeded, InvalidPhaseTransition, NotFound,
    RoomCodeExhausted, StorageUnavailable, Unauthorized, ValidationError
)
from guesswho.models.player import Player
from guesswho.models.room import Room, RoomStatus
from guesswho.models.user import User
from guesswho.models.vote import Vote
from guesswho.schemas.game import RoomOutcome, TieBreakPolicy, VoteResponse
from guesswho.schemas.room import (
    PlayerPublic, RoomCreate, RoomResponse, RoomStateResponse
)
from guesswho.services.locks import RoomLockManager, room_locks
from guesswho.services.room_events import RoomEventService
from guesswho.services.rules import FactionSpec, build_factions, derive_phase
from guesswho.services.word_pack import WordPackService

logger = logging.getLogger(__name__)


class RoomService:
    """房间管理服务类"""

    def __init__(self, db: AsyncSession, locks: Optional[RoomLockManager] = None):
        self.db = db
        self.locks = locks if locks is not None else room_locks
        self.events = RoomEventService(db)

    @asynccontextmanager
    async def locked(self, room_code: str) -> AsyncIterator[None]:
        """
        Serialize work on one room and commit it as a single transaction
        Events recorded inside are published after the lock is released.
        """
        # close the read transaction of earlier lookups before queueing on the lock
        if self.db.in_transaction():
            await self.db.commit()

        async with self.locks.room_lock(room_code):
            try:
                yield
                await self.db.commit()
            except (DisconnectionError, OperationalError) as e:
                await self.db.rollback()
                self.events.discard()
                logger.error(f"Storage failure while updating room {room_code}: {e}")
                raise StorageUnavailable("Database unavailable") from e
            except Exception:
                await self.db.rollback()
                self.events.discard()
                raise
        await self.events.publish()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def _generate_room_code(self) -> str:
        length = settings.ROOM_CODE_LENGTH
        return f"{random.randint(0, 10 ** length - 1):0{length}d}"

    async def _code_in_use(self, room_code: str) -> bool:
        """A code is taken if any room created inside the TTL window uses it"""
        since = utcnow() - timedelta(hours=settings.ROOM_CODE_TTL_HOURS)
        stmt = select(func.count(Room.id)).where(
            and_(Room.room_code == room_code, Room.created_at >= since)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one() > 0

    async def _allocate_room_code(self) -> str:
        for _ in range(settings.ROOM_CODE_MAX_ATTEMPTS):
            room_code = self._generate_room_code()
            if not await self._code_in_use(room_code):
                return room_code
        logger.error(f"No free room code after {settings.ROOM_CODE_MAX_ATTEMPTS} attempts")
        raise RoomCodeExhausted("Could not allocate a room code, try again later")

    def _build_config(self, room_data: RoomCreate, max_players: int) -> dict:
        if room_data.factions:
            factions = [
                FactionSpec(f.role, f.count, f.ratio, f.minimum, f.has_word)
                for f in room_data.factions
            ]
        else:
            factions = build_factions(room_data.undercover_count, room_data.mrx_count)
        fixed = sum(spec.count or 0 for spec in factions)
        if fixed > max_players - 1:
            raise ValidationError(
                f"{fixed} minority roles do not fit in a room of {max_players}",
                details={"max_players": max_players, "minority_count": fixed},
            )
        policy = room_data.tie_break_policy or TieBreakPolicy(settings.TIE_BREAK_POLICY)
        return {
            "factions": [spec.to_dict() for spec in factions],
            "tie_break_policy": policy.value,
        }

    async def create_room(self, room_data: RoomCreate, host: User) -> Room:
        """
        创建新房间
        The host joins as the first player unless ``host_joins`` is false.
        """
        max_players = room_data.max_players or settings.DEFAULT_MAX_PLAYERS
        if max_players > settings.MAX_PLAYERS_PER_ROOM:
            raise ValidationError(f"max_players may not exceed {settings.MAX_PLAYERS_PER_ROOM}")
        config = self._build_config(room_data, max_players)

        if room_data.word_pack_id:
            await WordPackService(self.db).get_pack(room_data.word_pack_id, viewer_id=host.id)

        room_code = await self._allocate_room_code()
        async with self.locked(room_code):
            # the code may have been taken while waiting for its lock
            if await self._code_in_use(room_code):
                raise RoomCodeExhausted("Room code collided, try again")

            room = Room(
                id=str(uuid.uuid4()),
                room_code=room_code,
                host_id=host.id,
                max_players=max_players,
                round_limit=room_data.round_limit or settings.DEFAULT_ROUND_LIMIT,
                config=config,
                word_pack_id=room_data.word_pack_id,
                status=RoomStatus.WAITING,
                current_round=1,
                speaking_order=[],
                version=0,
            )
            self.db.add(room)
            self.events.record(room, "room_created", {"host_id": host.id, "max_players": max_players})

            if room_data.host_joins:
                player = self._new_player(room, host, room_data.host_username, seat=1)
                self.db.add(player)
                self.events.record(room, "player_joined", self._player_event(player))

        logger.info(f"Room {room.room_code} created by {host.id} (max_players={max_players})")
        return room

    async def get_room_by_code(self, room_code: str) -> Room:
        """Most recent room using the code"""
        stmt = (
            select(Room)
            .where(Room.room_code == room_code)
            .order_by(Room.created_at.desc())
            .limit(1)
        )
        result = await self.db.execute(stmt)
        room = result.scalar_one_or_none()
        if room is None:
            raise NotFound(f"Room {room_code} not found")
        return room

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def _new_player(self, room: Room, user: User, username: Optional[str], seat: int) -> Player:
        return Player(
            id=str(uuid.uuid4()),
            room_id=room.id,
            user_id=user.id,
            username=(username or user.username).strip(),
            seat=seat,
            is_alive=True,
            has_given_clue=False,
            has_guessed=False,
            score=0,
        )

    def _player_event(self, player: Player) -> dict:
        return {"player_id": player.id, "username": player.username, "seat": player.seat}

    async def list_players(self, room: Room) -> List[Player]:
        stmt = select(Player).where(Player.room_id == room.id).order_by(Player.seat)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_player_for_user(self, room: Room, user_id: str) -> Optional[Player]:
        stmt = select(Player).where(and_(Player.room_id == room.id, Player.user_id == user_id))
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_player_for_user(self, room: Room, user_id: str) -> Player:
        player = await self.find_player_for_user(room, user_id)
        if player is None:
            raise NotFound(f"You are not a player in room {room.room_code}")
        return player

    async def join_room(self, room_code: str, user: User, username: Optional[str] = None):
        """
        加入房间
        Returns (room, player).
        """
        async with self.locked(room_code):
            room = await self.get_room_by_code(room_code)
            if room.status != RoomStatus.WAITING:
                raise InvalidPhaseTransition(f"Room {room_code} is no longer accepting players")

            if await self.find_player_for_user(room, user.id) is not None:
                raise AlreadyJoined(f"You already joined room {room_code}")

            players = await self.list_players(room)
            if len(players) >= room.max_players:
                raise CapacityExceeded(
                    f"Room {room_code} is full",
                    details={"max_players": room.max_players},
                )

            seat = max((p.seat for p in players), default=0) + 1
            player = self._new_player(room, user, username, seat)
            self.db.add(player)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise AlreadyJoined(f"You already joined room {room_code}") from e

            room.updated_at = utcnow()
            self.events.record(room, "player_joined", self._player_event(player))

        logger.info(f"User {user.id} joined room {room_code} as {player.username}")
        return room, player

    async def set_player_score(self, room_code: str, host: User, player_id: str, score: int) -> Player:
        """Host sets a player's score directly"""
        async with self.locked(room_code):
            room = await self.get_room_by_code(room_code)
            if room.host_id != host.id:
                raise Unauthorized("Only the host may change scores")

            player = await self.db.get(Player, player_id)
            if player is None or player.room_id != room.id:
                raise NotFound(f"Player {player_id} not found in room {room_code}")

            player.score = score
            room.updated_at = utcnow()
            self.events.record(room, "score_updated", {"player_id": player.id, "score": score})

        return player

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    async def current_round_votes(self, room: Room) -> List[Vote]:
        stmt = (
            select(Vote)
            .where(and_(Vote.room_id == room.id, Vote.round_number == room.current_round))
            .order_by(Vote.seq)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    def room_to_response(self, room: Room, player_count: int = 0) -> RoomResponse:
        """Convert Room model to RoomResponse; secret words stay hidden until finished"""
        finished = room.status == RoomStatus.FINISHED
        return RoomResponse(
            id=room.id,
            room_code=room.room_code,
            host_id=room.host_id,
            status=room.status.value if isinstance(room.status, RoomStatus) else room.status,
            current_round=room.current_round,
            max_players=room.max_players,
            round_limit=room.round_limit,
            word_pack_id=room.word_pack_id,
            player_count=player_count,
            outcome=room.outcome,
            version=room.version,
            civilian_word=room.civilian_word if finished else None,
            undercover_word=room.undercover_word if finished else None,
            created_at=room.created_at,
            started_at=room.started_at,
            finished_at=room.finished_at,
        )

    def player_to_public(self, player: Player, room: Room) -> PlayerPublic:
        """Roles are revealed for eliminated players and for everyone once finished"""
        reveal = room.status == RoomStatus.FINISHED or not player.is_alive
        return PlayerPublic(
            id=player.id,
            user_id=player.user_id,
            username=player.username,
            seat=player.seat,
            is_host=player.user_id == room.host_id,
            is_alive=player.is_alive,
            eliminated_round=player.eliminated_round,
            has_given_clue=player.has_given_clue,
            clue=player.clue,
            score=player.score,
            revealed_role=player.role if reveal else None,
        )

    async def get_room_state(self, room_code: str) -> RoomStateResponse:
        """房间快照：房间、玩家、本轮投票"""
        room = await self.get_room_by_code(room_code)
        players = await self.list_players(room)
        votes = await self.current_round_votes(room) if room.status != RoomStatus.WAITING else []

        return RoomStateResponse(
            room=self.room_to_response(room, len(players)),
            phase=derive_phase(room.status.value, players),
            players=[self.player_to_public(p, room) for p in players],
            votes=[VoteResponse.model_validate(v) for v in votes],
            speaking_order=list(room.speaking_order or []),
        )

    def room_factions(self, room: Room) -> List[FactionSpec]:
        factions = [FactionSpec.from_dict(item) for item in (room.config or {}).get("factions", [])]
        return factions or build_factions()

    def room_tie_break_policy(self, room: Room) -> TieBreakPolicy:
        return TieBreakPolicy((room.config or {}).get("tie_break_policy", settings.TIE_BREAK_POLICY))

    # ------------------------------------------------------------------
    # Idle expiry
    # ------------------------------------------------------------------

    async def expire_idle_rooms(self, max_idle_seconds: int) -> int:
        """
        Finish rooms nobody touched for ``max_idle_seconds``
        房间空闲超时后结束（不删除），结果记为 abandoned
        """
        cutoff = utcnow() - timedelta(seconds=max_idle_seconds)
        stmt = select(Room.room_code).where(
            and_(
                Room.status.in_([RoomStatus.WAITING, RoomStatus.PLAYING]),
                Room.updated_at < cutoff,
            )
        )
        result = await self.db.execute(stmt)
        room_codes = list(result.scalars().all())
        # release the read transaction before taking room locks
        await self.db.commit()

        expired = 0
        for room_code in room_codes:
            async with self.locked(room_code):
                room = await self.get_room_by_code(room_code)
                if room.status == RoomStatus.FINISHED or room.updated_at >= cutoff:
                    continue
                room.status = RoomStatus.FINISHED
                room.outcome = RoomOutcome.ABANDONED
                room.finished_at = utcnow()
                self.events.record(room, "room_expired", {"idle_seconds": max_idle_seconds})
                expired += 1

        if expired:
            logger.info(f"Expired {expired} idle rooms")
        return expired
