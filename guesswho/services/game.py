"""
Game service
游戏核心逻辑服务：开局、线索、投票、淘汰、胜负判定
"""

import uuid
import random
import logging
from typing import List, Optional

from sqlalchemy import and_, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from guesswho.core.config import settings
from guesswho.core.database import utcnow
from guesswho.core.exceptions import (
    InsufficientPlayers, InvalidPhaseTransition, Unauthorized, ValidationError
)
from guesswho.models.player import Player
from guesswho.models.room import Room, RoomStatus
from guesswho.models.user import User
from guesswho.models.vote import Vote
from guesswho.schemas.game import (
    ActionAck, GuessResult, PlayerRole, PlayerSecret, RoomOutcome, VoteAck, VoteResult
)
from guesswho.services.locks import RoomLockManager
from guesswho.services.room import RoomService
from guesswho.services.rules import (
    assign_roles, choose_word_pair, evaluate_winner, is_correct_guess,
    select_elimination, speaking_order, tally_votes, voting_complete
)
from guesswho.services.scoring import apply_awards
from guesswho.services.word_pack import WordPackService

logger = logging.getLogger(__name__)


class GameEngine:
    """游戏引擎 - 管理房间内的对局状态"""

    def __init__(self, db: AsyncSession, locks: Optional[RoomLockManager] = None,
                 rng: Optional[random.Random] = None):
        self.db = db
        self.rooms = RoomService(db, locks)
        self.rng = rng or random.Random()

    # ------------------------------------------------------------------
    # Start
    # ------------------------------------------------------------------

    async def start_game(self, room_code: str, user: User, word_pack_id: Optional[str] = None) -> Room:
        """
        开始游戏
        Draws one word pair, assigns roles and moves the room to playing.
        """
        async with self.rooms.locked(room_code):
            room = await self.rooms.get_room_by_code(room_code)
            if room.host_id != user.id:
                raise Unauthorized("Only the host may start the game")
            if room.status != RoomStatus.WAITING:
                raise InvalidPhaseTransition(f"Room {room_code} has already started")

            players = await self.rooms.list_players(room)
            if len(players) < settings.MIN_PLAYERS:
                raise InsufficientPlayers(
                    f"At least {settings.MIN_PLAYERS} players are required to start",
                    details={"player_count": len(players), "min_players": settings.MIN_PLAYERS},
                )

            pack_id = word_pack_id or room.word_pack_id or settings.DEFAULT_WORD_PACK_ID
            pack = await WordPackService(self.db).get_pack(pack_id, viewer_id=user.id)
            pair = choose_word_pair(pack.content, self.rng)
            assignments = assign_roles(
                [p.id for p in players], pair, self.rooms.room_factions(room), self.rng
            )

            # only one caller may move the room out of waiting
            result = await self.db.execute(
                update(Room)
                .where(and_(Room.id == room.id, Room.status == RoomStatus.WAITING))
                .values(
                    status=RoomStatus.PLAYING,
                    civilian_word=pair.civilian,
                    undercover_word=pair.undercover,
                    word_pack_id=pack.id,
                    started_at=utcnow(),
                    updated_at=utcnow(),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                raise InvalidPhaseTransition(f"Room {room_code} has already started")
            await self.db.refresh(room)

            by_id = {p.id: p for p in players}
            for assignment in assignments:
                player = by_id[assignment.player_id]
                player.role = assignment.role
                player.word = assignment.word

            room.speaking_order = speaking_order(players, self.rng)
            pack.usage_count = (pack.usage_count or 0) + 1

            self.rooms.events.record(room, "game_started", {
                "round": room.current_round,
                "word_pack_id": pack.id,
                "player_count": len(players),
                "speaking_order": list(room.speaking_order),
            })

        logger.info(f"Game started in room {room_code} with {len(players)} players, pack {pack.id}")
        return room

    # ------------------------------------------------------------------
    # Clues
    # ------------------------------------------------------------------

    async def submit_clue(self, room_code: str, user: User, text: str) -> ActionAck:
        """提交线索，本轮内重复提交覆盖旧线索"""
        clue = (text or "").strip()
        if not clue:
            raise ValidationError("Clue may not be empty")
        if len(clue) > settings.MAX_CLUE_LENGTH:
            raise ValidationError(f"Clue may not exceed {settings.MAX_CLUE_LENGTH} characters")

        async with self.rooms.locked(room_code):
            room = await self.rooms.get_room_by_code(room_code)
            if room.status != RoomStatus.PLAYING:
                raise InvalidPhaseTransition(f"Room {room_code} is not playing")

            player = await self.rooms.get_player_for_user(room, user.id)
            if not player.is_alive:
                raise InvalidPhaseTransition("Eliminated players cannot give clues")

            player.clue = clue
            player.has_given_clue = True
            room.updated_at = utcnow()
            self.rooms.events.record(room, "clue_submitted", {
                "player_id": player.id,
                "round": room.current_round,
                "clue": clue,
            })

        return ActionAck(message="Clue recorded", version=room.version)

    # ------------------------------------------------------------------
    # Votes
    # ------------------------------------------------------------------

    async def submit_vote(self, room_code: str, user: User, target_id: str,
                          round_number: Optional[int] = None) -> VoteAck:
        """
        投票
        The round resolves as soon as every alive player has voted.
        """
        async with self.rooms.locked(room_code):
            room = await self.rooms.get_room_by_code(room_code)
            if room.status != RoomStatus.PLAYING:
                raise InvalidPhaseTransition(f"Room {room_code} is not accepting votes")
            if round_number is not None and round_number != room.current_round:
                raise InvalidPhaseTransition(
                    f"Round {round_number} is not the current round",
                    details={"current_round": room.current_round},
                )

            voter = await self.rooms.get_player_for_user(room, user.id)
            if not voter.is_alive:
                raise InvalidPhaseTransition("Eliminated players cannot vote")
            if target_id == voter.id:
                raise ValidationError("Players cannot vote for themselves")

            players = await self.rooms.list_players(room)
            target = next((p for p in players if p.id == target_id), None)
            if target is None:
                raise ValidationError(f"Player {target_id} is not in room {room_code}")
            if not target.is_alive:
                raise ValidationError(f"Player {target_id} has already been eliminated")

            votes = await self.rooms.current_round_votes(room)
            if any(v.voter_id == voter.id for v in votes):
                raise InvalidPhaseTransition(f"Already voted in round {room.current_round}")

            vote = Vote(
                id=str(uuid.uuid4()),
                room_id=room.id,
                voter_id=voter.id,
                target_id=target.id,
                round_number=room.current_round,
                seq=len(votes) + 1,
            )
            self.db.add(vote)
            try:
                await self.db.flush()
            except IntegrityError as e:
                raise InvalidPhaseTransition(f"Already voted in round {room.current_round}") from e

            room.updated_at = utcnow()
            self.rooms.events.record(room, "vote_submitted", {
                "voter_id": voter.id,
                "target_id": target.id,
                "round": room.current_round,
            })

            votes.append(vote)
            resolution = None
            if voting_complete(players, [v.voter_id for v in votes]):
                resolution = await self._resolve_round(room, players, votes)

        return VoteAck(message="Vote recorded", version=room.version, resolution=resolution)

    async def resolve_round(self, room_code: str, user: User) -> VoteResult:
        """房主强制结算本轮（处理掉线玩家）"""
        async with self.rooms.locked(room_code):
            room = await self.rooms.get_room_by_code(room_code)
            if room.host_id != user.id:
                raise Unauthorized("Only the host may resolve a round")
            if room.status != RoomStatus.PLAYING:
                raise InvalidPhaseTransition(f"Room {room_code} is not playing")

            players = await self.rooms.list_players(room)
            votes = await self.rooms.current_round_votes(room)
            resolution = await self._resolve_round(room, players, votes)

        return resolution

    async def _resolve_round(self, room: Room, players: List[Player], votes: List[Vote]) -> VoteResult:
        """Tally the round, eliminate, then finish the room or advance the round"""
        round_number = room.current_round
        vote_counts = tally_votes(votes)
        eliminated_id, tie = select_elimination(vote_counts, self.rooms.room_tie_break_policy(room))

        resolution = VoteResult(round=round_number, vote_counts=vote_counts, tie=tie)

        if eliminated_id is not None:
            eliminated = next(p for p in players if p.id == eliminated_id)
            eliminated.is_alive = False
            eliminated.eliminated_round = round_number
            room.last_eliminated_player_id = eliminated.id
            resolution.eliminated_player_id = eliminated.id
            resolution.eliminated_role = eliminated.role
            self.rooms.events.record(room, "player_eliminated", {
                "player_id": eliminated.id,
                "role": eliminated.role.value,
                "round": round_number,
                "vote_counts": vote_counts,
            })
            logger.info(f"Room {room.room_code} round {round_number}: eliminated {eliminated.id} "
                        f"({eliminated.role.value})")
        else:
            logger.info(f"Room {room.room_code} round {round_number}: no elimination (tie={tie})")

        outcome = evaluate_winner(players) if eliminated_id is not None else None
        if outcome is None and room.round_limit_reached:
            outcome = RoomOutcome.DRAW

        if outcome is not None:
            self._finish(room, players, outcome)
            resolution.outcome = outcome
            return resolution

        room.current_round = round_number + 1
        for player in players:
            player.has_given_clue = False
            player.clue = None
        room.speaking_order = speaking_order(players, self.rng)
        room.updated_at = utcnow()
        self.rooms.events.record(room, "round_advanced", {
            "round": room.current_round,
            "speaking_order": list(room.speaking_order),
        })
        return resolution

    def _finish(self, room: Room, players: List[Player], outcome: RoomOutcome):
        """结束对局并公开词语和身份"""
        room.status = RoomStatus.FINISHED
        room.outcome = outcome
        room.finished_at = utcnow()
        room.updated_at = room.finished_at

        awards = apply_awards(room, players, outcome)
        self.rooms.events.record(room, "game_finished", {
            "outcome": outcome.value,
            "round": room.current_round,
            "civilian_word": room.civilian_word,
            "undercover_word": room.undercover_word,
            "roles": {p.id: p.role.value for p in players},
            "awards": awards,
        })
        logger.info(f"Room {room.room_code} finished: {outcome.value}")

    # ------------------------------------------------------------------
    # Mr. X
    # ------------------------------------------------------------------

    async def submit_guess(self, room_code: str, user: User, guess: str) -> GuessResult:
        """
        Mr. X 猜平民词
        One guess per Mr. X, allowed in the round right after an elimination
        or once an elimination of Mr. X has finished the game.
        """
        if not (guess or "").strip():
            raise ValidationError("Guess may not be empty")

        async with self.rooms.locked(room_code):
            room = await self.rooms.get_room_by_code(room_code)
            player = await self.rooms.get_player_for_user(room, user.id)

            if player.role != PlayerRole.MRX:
                raise InvalidPhaseTransition("Only Mr. X may guess the civilian word")
            if player.has_guessed:
                raise InvalidPhaseTransition("Mr. X has already used the guess")
            if room.status == RoomStatus.WAITING or room.last_eliminated_player_id is None:
                raise InvalidPhaseTransition("Guessing opens after the first elimination")
            if room.status == RoomStatus.PLAYING:
                last_eliminated = await self.db.get(Player, room.last_eliminated_player_id)
                if last_eliminated is None or last_eliminated.eliminated_round != room.current_round - 1:
                    raise InvalidPhaseTransition("Guessing is only open in the round after an elimination")
            if room.status == RoomStatus.FINISHED and (
                room.last_eliminated_player_id != player.id
                or room.outcome in (RoomOutcome.MRX, RoomOutcome.ABANDONED)
            ):
                raise InvalidPhaseTransition(f"Room {room_code} has already finished")

            correct = is_correct_guess(guess, room.civilian_word)
            player.has_guessed = True
            room.updated_at = utcnow()
            self.rooms.events.record(room, "mrx_guessed", {
                "player_id": player.id,
                "correct": correct,
            })

            if correct:
                if room.status == RoomStatus.FINISHED:
                    # overrides the outcome of the elimination that ended the game
                    room.outcome = RoomOutcome.MRX
                    self.rooms.events.record(room, "game_finished", {
                        "outcome": RoomOutcome.MRX.value,
                        "round": room.current_round,
                        "civilian_word": room.civilian_word,
                        "undercover_word": room.undercover_word,
                    })
                    logger.info(f"Room {room_code} outcome overridden by Mr. X guess")
                else:
                    players = await self.rooms.list_players(room)
                    self._finish(room, players, RoomOutcome.MRX)

        return GuessResult(correct=correct, outcome=room.outcome, version=room.version)

    # ------------------------------------------------------------------
    # Private view
    # ------------------------------------------------------------------

    async def get_player_secret(self, room_code: str, user: User) -> PlayerSecret:
        """查看自己的身份和词语，只对本人返回"""
        room = await self.rooms.get_room_by_code(room_code)
        if room.status == RoomStatus.WAITING:
            raise InvalidPhaseTransition(f"Roles in room {room_code} have not been assigned yet")
        player = await self.rooms.get_player_for_user(room, user.id)
        return PlayerSecret(
            player_id=player.id,
            room_code=room.room_code,
            role=player.role,
            word=player.word,
            has_guessed=player.has_guessed,
        )

    async def count_alive_players(self, room_code: str) -> int:
        room = await self.rooms.get_room_by_code(room_code)
        stmt = select(func.count(Player.id)).where(
            and_(Player.room_id == room.id, Player.is_alive.is_(True))
        )
        result = await self.db.execute(stmt)
        return result.scalar_one()
