"""
Room registry and roster tests
房间注册与玩家名册测试
"""

import pytest
from datetime import timedelta
from sqlalchemy import update

from guesswho.core.config import settings
from guesswho.core.database import utcnow
from guesswho.core.exceptions import (
    AlreadyJoined, CapacityExceeded, InvalidPhaseTransition, NotFound,
    RoomCodeExhausted, Unauthorized, ValidationError
)
from guesswho.models.room import Room, RoomStatus
from guesswho.schemas.game import GamePhase, RoomOutcome
from guesswho.schemas.room import RoomCreate


class TestRoomRegistry:
    """房间注册测试"""

    async def test_create_room_defaults(self, room_service, make_user):
        host = await make_user("host")
        room = await room_service.create_room(RoomCreate(max_players=8), host)

        assert len(room.room_code) == 6 and room.room_code.isdigit()
        assert room.status == RoomStatus.WAITING
        assert room.current_round == 1
        assert room.host_id == host.id
        assert room.config["tie_break_policy"] == settings.TIE_BREAK_POLICY

        players = await room_service.list_players(room)
        assert [p.user_id for p in players] == [host.id]
        assert players[0].seat == 1

    async def test_host_may_stay_out_of_the_roster(self, room_service, make_user):
        host = await make_user("host")
        room = await room_service.create_room(RoomCreate(host_joins=False), host)
        assert await room_service.list_players(room) == []

    async def test_get_room_by_code(self, room_service, make_user):
        host = await make_user("host")
        room = await room_service.create_room(RoomCreate(), host)

        found = await room_service.get_room_by_code(room.room_code)
        assert found.id == room.id
        with pytest.raises(NotFound):
            await room_service.get_room_by_code("000000" if room.room_code != "000000" else "111111")

    async def test_code_reuse_is_recency_scoped(self, room_service, db_session, make_user, monkeypatch):
        host = await make_user("host")
        monkeypatch.setattr(room_service, "_generate_room_code", lambda: "123456")
        first = await room_service.create_room(RoomCreate(), host)
        assert first.room_code == "123456"

        # a code used inside the window cannot be handed out again
        with pytest.raises(RoomCodeExhausted):
            await room_service.create_room(RoomCreate(), host)

        old = utcnow() - timedelta(hours=settings.ROOM_CODE_TTL_HOURS + 1)
        await db_session.execute(update(Room).where(Room.id == first.id).values(created_at=old))
        await db_session.commit()

        second = await room_service.create_room(RoomCreate(), host)
        assert second.room_code == "123456"
        assert second.id != first.id
        # lookups resolve to the most recent room using the code
        assert (await room_service.get_room_by_code("123456")).id == second.id

    async def test_code_allocation_gives_up(self, room_service, make_user, monkeypatch):
        host = await make_user("host")
        monkeypatch.setattr(settings, "ROOM_CODE_MAX_ATTEMPTS", 3)
        calls = []

        async def always_taken(code):
            calls.append(code)
            return True

        monkeypatch.setattr(room_service, "_code_in_use", always_taken)
        with pytest.raises(RoomCodeExhausted):
            await room_service.create_room(RoomCreate(), host)
        assert len(calls) == 3

    async def test_fixed_minority_must_fit_the_room(self, room_service, make_user):
        host = await make_user("host")
        with pytest.raises(ValidationError):
            await room_service.create_room(RoomCreate(max_players=3, undercover_count=2, mrx_count=1), host)

    async def test_max_players_is_capped(self, room_service, make_user):
        host = await make_user("host")
        with pytest.raises(ValidationError):
            await room_service.create_room(RoomCreate(max_players=settings.MAX_PLAYERS_PER_ROOM + 1), host)

    async def test_unknown_word_pack_is_rejected(self, room_service, make_user):
        host = await make_user("host")
        with pytest.raises(NotFound):
            await room_service.create_room(RoomCreate(word_pack_id="missing"), host)


class TestRoster:
    """玩家名册测试"""

    async def test_join_assigns_seats_and_display_names(self, room_service, make_room, make_user):
        room, users = await make_room(3)
        newcomer = await make_user("newcomer")
        _, player = await room_service.join_room(room.room_code, newcomer, "  Nick  ")

        assert player.username == "Nick"
        players = await room_service.list_players(room)
        assert [p.seat for p in players] == [1, 2, 3, 4]
        assert all(p.is_alive and p.score == 0 for p in players)

    async def test_join_unknown_room(self, room_service, make_user):
        account = await make_user("lost")
        with pytest.raises(NotFound):
            await room_service.join_room("999999", account)

    async def test_join_twice(self, room_service, make_room):
        room, users = await make_room(3)
        with pytest.raises(AlreadyJoined):
            await room_service.join_room(room.room_code, users[1])

    async def test_join_full_room(self, room_service, make_room, make_user):
        room, _ = await make_room(3, max_players=3)
        code = room.room_code
        late = await make_user("late")
        with pytest.raises(CapacityExceeded):
            await room_service.join_room(code, late)

        # rejected operations roll back, so reload before reading again
        room = await room_service.get_room_by_code(code)
        assert len(await room_service.list_players(room)) == 3

    async def test_join_started_room(self, room_service, make_started_room, make_user):
        room, _, _ = await make_started_room(3)
        late = await make_user("late")
        with pytest.raises(InvalidPhaseTransition):
            await room_service.join_room(room.room_code, late)

    async def test_host_sets_scores(self, room_service, db_session, make_room):
        room, users = await make_room(3)
        code = room.room_code
        players = await room_service.list_players(room)
        target_id = players[1].id

        player = await room_service.set_player_score(code, users[0], target_id, 7)
        assert player.score == 7
        with pytest.raises(Unauthorized):
            await room_service.set_player_score(code, users[1], target_id, 9)

        await db_session.refresh(users[0])
        with pytest.raises(NotFound):
            await room_service.set_player_score(code, users[0], "nobody", 1)

        room = await room_service.get_room_by_code(code)
        scores = {p.id: p.score for p in await room_service.list_players(room)}
        assert scores[target_id] == 7


class TestRoomSnapshot:
    """房间快照测试"""

    async def test_waiting_state(self, room_service, make_room):
        room, users = await make_room(3)
        state = await room_service.get_room_state(room.room_code)

        assert state.phase == GamePhase.WAITING
        assert state.room.player_count == 3
        assert [p.user_id for p in state.players] == [u.id for u in users]
        assert state.players[0].is_host

    async def test_playing_state_hides_secrets(self, room_service, make_started_room):
        room, _, _ = await make_started_room(4)
        state = await room_service.get_room_state(room.room_code)

        assert state.phase == GamePhase.CLUES
        assert state.room.civilian_word is None
        assert state.room.undercover_word is None
        assert all(p.revealed_role is None for p in state.players)
        assert sorted(state.speaking_order) == sorted(p.id for p in state.players)


class TestIdleExpiry:
    """空闲房间过期测试"""

    async def test_idle_rooms_are_abandoned(self, room_service, db_session, make_room):
        idle, _ = await make_room(3)
        active, _ = await make_room(3)

        stale = utcnow() - timedelta(hours=2)
        await db_session.execute(update(Room).where(Room.id == idle.id).values(updated_at=stale))
        await db_session.commit()

        expired = await room_service.expire_idle_rooms(max_idle_seconds=1800)
        assert expired == 1

        idle = await room_service.get_room_by_code(idle.room_code)
        assert idle.status == RoomStatus.FINISHED
        assert idle.outcome == RoomOutcome.ABANDONED
        active = await room_service.get_room_by_code(active.room_code)
        assert active.status == RoomStatus.WAITING

        # finished rooms are never touched again
        assert await room_service.expire_idle_rooms(max_idle_seconds=1800) == 0
