"""
Game flow tests
对局流程测试：开局、线索、投票、淘汰、胜负、Mr. X 猜词
"""

import json
import random

import pytest

from guesswho.core.exceptions import (
    InsufficientPlayers, InvalidPhaseTransition, NotFound, Unauthorized, ValidationError
)
from guesswho.models.room import RoomStatus
from guesswho.schemas.game import GamePhase, PlayerRole, RoomOutcome, TieBreakPolicy
from guesswho.services import scoring
from guesswho.services.game import GameEngine
from guesswho.services.word_pack import WordPackService


class FirstChoiceRandom(random.Random):
    """Always draws the first word pair of a pack"""

    def choice(self, seq):
        return seq[0]


def players_with_role(by_user, role):
    return [p for p in by_user.values() if p.role == role]


def user_of(users, player):
    return next(u for u in users if u.id == player.user_id)


class TestStartGame:
    """开局测试"""

    async def test_three_players_get_one_undercover(self, make_started_room):
        room, users, by_user = await make_started_room(3)

        assert room.status == RoomStatus.PLAYING
        assert len(players_with_role(by_user, PlayerRole.UNDERCOVER)) == 1
        assert len(players_with_role(by_user, PlayerRole.CIVILIAN)) == 2
        assert room.started_at is not None

    async def test_eight_players_share_one_pair(self, db_session, room_locks, make_room):
        room, users = await make_room(8)
        engine = GameEngine(db_session, room_locks, rng=FirstChoiceRandom(7))
        await engine.start_game(room.room_code, users[0], "general-pack")

        assert room.civilian_word == "Apple"
        assert room.undercover_word == "Orange"
        players = await engine.rooms.list_players(room)
        assert sum(1 for p in players if p.role == PlayerRole.UNDERCOVER) == 2
        for player in players:
            expected = "Orange" if player.role == PlayerRole.UNDERCOVER else "Apple"
            assert player.word == expected

    async def test_only_host_starts(self, game_engine, make_room):
        room, users = await make_room(3)
        with pytest.raises(Unauthorized):
            await game_engine.start_game(room.room_code, users[1])

    async def test_needs_three_players(self, game_engine, make_room):
        room, users = await make_room(2)
        with pytest.raises(InsufficientPlayers):
            await game_engine.start_game(room.room_code, users[0])

    async def test_second_start_is_rejected(self, game_engine, make_started_room):
        room, users, _ = await make_started_room(3)
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.start_game(room.room_code, users[0])

    async def test_fixed_counts_must_leave_a_civilian(self, game_engine, make_room):
        room, users = await make_room(3, undercover_count=2, mrx_count=1)
        with pytest.raises(InsufficientPlayers):
            await game_engine.start_game(room.room_code, users[0])

    async def test_fixed_counts_with_one_civilian_left(self, game_engine, room_service, make_room):
        room, users = await make_room(3, undercover_count=1, mrx_count=1)
        await game_engine.start_game(room.room_code, users[0])

        roles = sorted(p.role.value for p in await room_service.list_players(room))
        assert roles == ["civilian", "mrx", "undercover"]

    async def test_pack_usage_is_counted(self, db_session, game_engine, make_room):
        room, users = await make_room(3)
        await game_engine.start_game(room.room_code, users[0], "technology")

        pack = await WordPackService(db_session).find_pack("technology")
        assert pack.usage_count == 1
        assert room.word_pack_id == "technology"

    async def test_players_only_see_their_own_secret(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(4)
        for account in users:
            secret = await game_engine.get_player_secret(room.room_code, account)
            assert secret.player_id == by_user[account.id].id
            assert secret.role == by_user[account.id].role
            assert secret.word == by_user[account.id].word

    async def test_secret_before_start(self, game_engine, make_room):
        room, users = await make_room(3)
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.get_player_secret(room.room_code, users[0])

    async def test_start_event_carries_no_secrets(self, room_service, make_started_room):
        room, _, _ = await make_started_room(4)
        events = await room_service.events.list_events(room)
        started = [e for e in events if e.kind == "game_started"]

        assert len(started) == 1
        dumped = json.dumps([e.payload for e in events])
        assert room.civilian_word not in dumped
        assert room.undercover_word not in dumped


class TestClues:
    """线索阶段测试"""

    async def test_clue_resubmission_overwrites(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        await game_engine.submit_clue(room.room_code, users[1], "round and red")
        await game_engine.submit_clue(room.room_code, users[1], "grows on trees")

        player = by_user[users[1].id]
        assert player.clue == "grows on trees"
        assert player.has_given_clue

    async def test_phase_moves_to_voting_after_all_clues(self, game_engine, room_service, make_started_room):
        room, users, _ = await make_started_room(3)
        for account in users:
            state = await room_service.get_room_state(room.room_code)
            assert state.phase == GamePhase.CLUES
            await game_engine.submit_clue(room.room_code, account, f"clue from {account.username}")

        state = await room_service.get_room_state(room.room_code)
        assert state.phase == GamePhase.VOTING

    async def test_empty_clue(self, game_engine, make_started_room):
        room, users, _ = await make_started_room(3)
        with pytest.raises(ValidationError):
            await game_engine.submit_clue(room.room_code, users[0], "   ")

    async def test_clue_needs_a_playing_room(self, game_engine, make_room):
        room, users = await make_room(3)
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_clue(room.room_code, users[0], "too early")

    async def test_outsider_cannot_give_clues(self, game_engine, make_started_room, make_user):
        room, _, _ = await make_started_room(3)
        outsider = await make_user("outsider")
        with pytest.raises(NotFound):
            await game_engine.submit_clue(room.room_code, outsider, "hello")


class TestVoting:
    """投票与淘汰测试"""

    async def test_clear_majority_is_eliminated(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(8)
        code = room.room_code
        pid = [by_user[u.id].id for u in users]

        ballots = [(1, 0), (2, 0), (3, 0), (0, 1), (4, 1), (5, 2), (6, 2), (7, 3)]
        acks = [await game_engine.submit_vote(code, users[v], pid[t]) for v, t in ballots]

        assert all(ack.resolution is None for ack in acks[:-1])
        resolution = acks[-1].resolution
        assert resolution.eliminated_player_id == pid[0]
        assert resolution.vote_counts == {pid[0]: 3, pid[1]: 2, pid[2]: 2, pid[3]: 1}
        assert not resolution.tie
        assert resolution.outcome is None

        assert by_user[users[0].id].is_alive is False
        assert by_user[users[0].id].eliminated_round == 1
        assert await game_engine.count_alive_players(code) == 7
        assert room.current_round == 2

    async def test_second_vote_in_round_is_rejected(self, game_engine, room_service, make_started_room):
        room, users, by_user = await make_started_room(4)
        code = room.room_code
        first_target = by_user[users[2].id].id
        second_target = by_user[users[3].id].id

        await game_engine.submit_vote(code, users[1], first_target)
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_vote(code, users[1], second_target)

        state = await room_service.get_room_state(code)
        assert [(v.target_id, v.round_number) for v in state.votes] == [(first_target, 1)]

    async def test_self_vote(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        with pytest.raises(ValidationError):
            await game_engine.submit_vote(room.room_code, users[1], by_user[users[1].id].id)

    async def test_unknown_target(self, game_engine, make_started_room):
        room, users, _ = await make_started_room(3)
        with pytest.raises(ValidationError):
            await game_engine.submit_vote(room.room_code, users[1], "not-a-player")

    async def test_stale_round(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_vote(room.room_code, users[1], by_user[users[2].id].id, round_number=2)

    async def test_eliminated_players_cannot_vote_or_be_voted(self, db_session, game_engine, make_started_room):
        room, users, by_user = await make_started_room(8)
        code = room.room_code
        pid = [by_user[u.id].id for u in users]
        for v, t in [(1, 0), (2, 0), (3, 0), (0, 1), (4, 1), (5, 2), (6, 2), (7, 3)]:
            await game_engine.submit_vote(code, users[v], pid[t])

        with pytest.raises(ValidationError):
            await game_engine.submit_vote(code, users[1], pid[0])

        await db_session.refresh(users[0])
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_vote(code, users[0], pid[1])

    async def test_civilians_win_and_voting_closes(self, game_engine, room_service, make_started_room):
        room, users, by_user = await make_started_room(4)
        code = room.room_code
        undercover = players_with_role(by_user, PlayerRole.UNDERCOVER)[0]
        civilians = players_with_role(by_user, PlayerRole.CIVILIAN)

        for civilian in civilians:
            await game_engine.submit_vote(code, user_of(users, civilian), undercover.id)
        ack = await game_engine.submit_vote(code, user_of(users, undercover), civilians[0].id)

        assert ack.resolution.eliminated_player_id == undercover.id
        assert ack.resolution.eliminated_role == PlayerRole.UNDERCOVER
        assert ack.resolution.outcome == RoomOutcome.CIVILIANS
        assert room.status == RoomStatus.FINISHED
        assert room.outcome == RoomOutcome.CIVILIANS

        state = await room_service.get_room_state(code)
        assert state.phase == GamePhase.FINISHED
        assert state.room.civilian_word == room.civilian_word
        assert all(p.revealed_role is not None for p in state.players)

        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_vote(code, user_of(users, civilians[0]), civilians[1].id)

    async def test_undercover_win_at_parity(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        code = room.room_code
        undercover = players_with_role(by_user, PlayerRole.UNDERCOVER)[0]
        victim, other = players_with_role(by_user, PlayerRole.CIVILIAN)

        await game_engine.submit_vote(code, user_of(users, undercover), victim.id)
        await game_engine.submit_vote(code, user_of(users, other), victim.id)
        ack = await game_engine.submit_vote(code, user_of(users, victim), undercover.id)

        assert ack.resolution.eliminated_player_id == victim.id
        assert ack.resolution.outcome == RoomOutcome.UNDERCOVER


class TestRoundResolution:
    """平票、强制结算与轮数上限测试"""

    async def test_tie_without_elimination_advances_round(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(4)
        code = room.room_code
        pid = [by_user[u.id].id for u in users]
        for account in users:
            await game_engine.submit_clue(code, account, "something")

        acks = [await game_engine.submit_vote(code, users[v], pid[t]) for v, t in [(0, 1), (1, 0), (2, 3), (3, 2)]]

        resolution = acks[-1].resolution
        assert resolution.tie
        assert resolution.eliminated_player_id is None
        assert room.current_round == 2
        assert all(p.is_alive for p in by_user.values())
        assert all(not p.has_given_clue and p.clue is None for p in by_user.values())
        assert sorted(room.speaking_order) == sorted(pid)

    async def test_tie_with_lowest_id_policy(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(4, tie_break_policy=TieBreakPolicy.LOWEST_PLAYER_ID)
        code = room.room_code
        pid = [by_user[u.id].id for u in users]

        acks = [await game_engine.submit_vote(code, users[v], pid[t]) for v, t in [(0, 1), (1, 0), (2, 3), (3, 2)]]
        assert acks[-1].resolution.tie
        assert acks[-1].resolution.eliminated_player_id == min(pid)

    async def test_host_forces_resolution(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(4)
        code = room.room_code
        target = by_user[users[2].id]
        await game_engine.submit_vote(code, users[1], target.id)
        await game_engine.submit_vote(code, users[3], target.id)

        resolution = await game_engine.resolve_round(code, users[0])
        assert resolution.eliminated_player_id == target.id
        assert target.is_alive is False

    async def test_only_host_forces_resolution(self, game_engine, make_started_room):
        room, users, _ = await make_started_room(3)
        with pytest.raises(Unauthorized):
            await game_engine.resolve_round(room.room_code, users[1])

    async def test_round_limit_ends_in_draw(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(4, round_limit=1)

        resolution = await game_engine.resolve_round(room.room_code, users[0])

        assert resolution.eliminated_player_id is None
        assert resolution.outcome == RoomOutcome.DRAW
        assert room.status == RoomStatus.FINISHED
        assert room.outcome == RoomOutcome.DRAW
        assert room.current_round == 1
        assert all(p.is_alive for p in by_user.values())


class TestMrX:
    """Mr. X 猜词测试"""

    async def _eliminate(self, engine, code, users, by_user, target):
        for player in by_user.values():
            if not player.is_alive:
                continue
            if player.id == target.id:
                other = next(p for p in by_user.values() if p.is_alive and p.id != target.id)
                ack = await engine.submit_vote(code, user_of(users, player), other.id)
            else:
                ack = await engine.submit_vote(code, user_of(users, player), target.id)
        return ack.resolution

    async def test_guess_opens_after_first_elimination(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(5, undercover_count=1, mrx_count=1)
        mrx = players_with_role(by_user, PlayerRole.MRX)[0]
        assert mrx.word is None

        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_guess(room.room_code, user_of(users, mrx), "anything")

    async def test_correct_guess_wins(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(5, undercover_count=1, mrx_count=1)
        code = room.room_code
        mrx = players_with_role(by_user, PlayerRole.MRX)[0]
        civilian = players_with_role(by_user, PlayerRole.CIVILIAN)[0]

        resolution = await self._eliminate(game_engine, code, users, by_user, civilian)
        assert resolution.eliminated_player_id == civilian.id
        assert resolution.outcome is None

        result = await game_engine.submit_guess(code, user_of(users, mrx), f"  {room.civilian_word.upper()} ")
        assert result.correct
        assert result.outcome == RoomOutcome.MRX
        assert room.status == RoomStatus.FINISHED
        assert room.outcome == RoomOutcome.MRX

    async def test_wrong_guess_consumes_the_chance(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(5, undercover_count=1, mrx_count=1)
        code = room.room_code
        mrx = players_with_role(by_user, PlayerRole.MRX)[0]
        civilian = players_with_role(by_user, PlayerRole.CIVILIAN)[0]
        await self._eliminate(game_engine, code, users, by_user, civilian)

        result = await game_engine.submit_guess(code, user_of(users, mrx), "definitely wrong")
        assert not result.correct
        assert result.outcome is None
        assert room.status == RoomStatus.PLAYING
        assert mrx.has_guessed

        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_guess(code, user_of(users, mrx), "another try")

    async def test_guess_closes_when_the_next_round_advances(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(5, undercover_count=1, mrx_count=1)
        code = room.room_code
        mrx = players_with_role(by_user, PlayerRole.MRX)[0]
        civilian = players_with_role(by_user, PlayerRole.CIVILIAN)[0]
        await self._eliminate(game_engine, code, users, by_user, civilian)

        # nobody votes, the host moves on without an elimination
        resolution = await game_engine.resolve_round(code, users[0])
        assert resolution.eliminated_player_id is None
        assert room.current_round == 3

        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_guess(code, user_of(users, mrx), room.civilian_word)

    async def test_only_mrx_guesses(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(5, undercover_count=1, mrx_count=1)
        civilian = players_with_role(by_user, PlayerRole.CIVILIAN)[0]
        with pytest.raises(InvalidPhaseTransition):
            await game_engine.submit_guess(room.room_code, user_of(users, civilian), "Apple")

    async def test_eliminated_mrx_may_still_win_by_guess(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3, undercover_count=0, mrx_count=1)
        code = room.room_code
        mrx = players_with_role(by_user, PlayerRole.MRX)[0]

        resolution = await self._eliminate(game_engine, code, users, by_user, mrx)
        assert resolution.outcome == RoomOutcome.CIVILIANS
        assert room.status == RoomStatus.FINISHED

        result = await game_engine.submit_guess(code, user_of(users, mrx), room.civilian_word)
        assert result.correct
        assert result.outcome == RoomOutcome.MRX
        assert room.outcome == RoomOutcome.MRX


class TestScoringHook:
    """积分挂钩测试"""

    @pytest.fixture
    def winner_bonus(self):
        class WinnerBonus:
            def award(self, room, players, outcome):
                if outcome != RoomOutcome.CIVILIANS:
                    return {}
                return {p.id: 10 for p in players if p.role == PlayerRole.CIVILIAN}

        scoring.set_scoring_policy(WinnerBonus())
        yield
        scoring.set_scoring_policy(None)

    async def test_default_policy_awards_nothing(self, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        undercover = players_with_role(by_user, PlayerRole.UNDERCOVER)[0]
        for player in by_user.values():
            target = undercover if player.id != undercover.id else next(
                p for p in by_user.values() if p.id != undercover.id)
            await game_engine.submit_vote(room.room_code, user_of(users, player), target.id)

        assert room.outcome == RoomOutcome.CIVILIANS
        assert all(p.score == 0 for p in by_user.values())

    async def test_policy_runs_when_room_finishes(self, winner_bonus, game_engine, make_started_room):
        room, users, by_user = await make_started_room(3)
        undercover = players_with_role(by_user, PlayerRole.UNDERCOVER)[0]
        for player in by_user.values():
            target = undercover if player.id != undercover.id else next(
                p for p in by_user.values() if p.id != undercover.id)
            await game_engine.submit_vote(room.room_code, user_of(users, player), target.id)

        assert room.outcome == RoomOutcome.CIVILIANS
        for player in by_user.values():
            assert player.score == (10 if player.role == PlayerRole.CIVILIAN else 0)
