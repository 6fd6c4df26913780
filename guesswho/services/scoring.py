"""
Score award hook
积分策略挂钩：对局结束时调用，默认不加分
"""

import logging
from typing import Dict, Optional, Protocol, Sequence

from guesswho.models.player import Player
from guesswho.models.room import Room
from guesswho.schemas.game import RoomOutcome

logger = logging.getLogger(__name__)


class ScoringPolicy(Protocol):
    """Returns score deltas by player id for a finished room"""

    def award(self, room: Room, players: Sequence[Player], outcome: RoomOutcome) -> Dict[str, int]:
        ...


class NoScoring:
    """Scores only change when set explicitly by the host"""

    def award(self, room: Room, players: Sequence[Player], outcome: RoomOutcome) -> Dict[str, int]:
        return {}


_policy: ScoringPolicy = NoScoring()


def get_scoring_policy() -> ScoringPolicy:
    return _policy


def set_scoring_policy(policy: Optional[ScoringPolicy]) -> None:
    """Install a policy; None restores the default"""
    global _policy
    _policy = policy or NoScoring()
    logger.info(f"Scoring policy set to {type(_policy).__name__}")


def apply_awards(room: Room, players: Sequence[Player], outcome: RoomOutcome,
                 policy: Optional[ScoringPolicy] = None) -> Dict[str, int]:
    """Add the policy's deltas onto player scores and return them"""
    deltas = (policy or _policy).award(room, players, outcome) or {}
    by_id = {p.id: p for p in players}
    for player_id, delta in deltas.items():
        player = by_id.get(player_id)
        if player is not None and delta:
            player.score = (player.score or 0) + delta
    return deltas
