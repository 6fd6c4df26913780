"""
Pure game rules
游戏规则纯函数：角色分配、发言顺序、计票、胜负判定

Nothing here touches the database. Functions accept any objects exposing the
attributes they read (``id``, ``role``, ``is_alive``, ``has_given_clue``), so
ORM rows and plain test doubles work alike.
"""

import math
import random
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from guesswho.core.exceptions import InsufficientPlayers, ValidationError
from guesswho.schemas.game import GamePhase, PlayerRole, RoomOutcome, TieBreakPolicy


@dataclass(frozen=True)
class FactionSpec:
    """One minority faction: fixed count, or ratio of the player count"""
    role: PlayerRole
    count: Optional[int] = None
    ratio: Optional[float] = None
    minimum: int = 0
    has_word: bool = True

    def resolve(self, player_count: int) -> int:
        if self.count is not None:
            return self.count
        if self.ratio is not None:
            return max(self.minimum, math.floor(player_count * self.ratio))
        return self.minimum

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role": self.role.value,
            "count": self.count,
            "ratio": self.ratio,
            "minimum": self.minimum,
            "has_word": self.has_word,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FactionSpec":
        return cls(
            role=PlayerRole(data["role"]),
            count=data.get("count"),
            ratio=data.get("ratio"),
            minimum=data.get("minimum", 0),
            has_word=data.get("has_word", True),
        )


@dataclass(frozen=True)
class WordPair:
    civilian: str
    undercover: str


@dataclass(frozen=True)
class RoleAssignment:
    player_id: str
    role: PlayerRole
    word: Optional[str]


# max(1, floor(n / 4)) undercover players, everyone else civilian
DEFAULT_FACTIONS: Tuple[FactionSpec, ...] = (
    FactionSpec(PlayerRole.UNDERCOVER, ratio=0.25, minimum=1),
)


def build_factions(undercover_count: Optional[int] = None, mrx_count: int = 0) -> List[FactionSpec]:
    """Faction list for a room; Mr. X first, matching the assignment order"""
    factions = []
    if mrx_count:
        factions.append(FactionSpec(PlayerRole.MRX, count=mrx_count, has_word=False))
    if undercover_count is None:
        factions.extend(DEFAULT_FACTIONS)
    elif undercover_count:
        factions.append(FactionSpec(PlayerRole.UNDERCOVER, count=undercover_count))
    return factions


def resolve_faction_counts(factions: Sequence[FactionSpec], player_count: int) -> List[Tuple[FactionSpec, int]]:
    """Fix the number of players per minority faction for this game

    The minority total may not exceed ``player_count - 1`` so at least one
    civilian remains.
    """
    resolved = [(spec, spec.resolve(player_count)) for spec in factions]
    total = sum(count for _, count in resolved)
    if total < 1:
        raise ValidationError("At least one minority player is required")
    if total > player_count - 1:
        raise InsufficientPlayers(
            f"{player_count} players cannot cover {total} minority roles",
            details={"player_count": player_count, "minority_count": total},
        )
    return resolved


def word_for_role(role: PlayerRole, pair: WordPair) -> Optional[str]:
    if role == PlayerRole.CIVILIAN:
        return pair.civilian
    if role == PlayerRole.UNDERCOVER:
        return pair.undercover
    return None


def choose_word_pair(content: Sequence[Dict[str, str]], rng: random.Random = None) -> WordPair:
    """Draw one pair uniformly at random from a pack's content"""
    if not content:
        raise ValidationError("Word pack has no word pairs")
    rng = rng or random
    pair = rng.choice(list(content))
    return WordPair(civilian=pair["civilian"], undercover=pair["undercover"])


def assign_roles(
    player_ids: Sequence[str],
    pair: WordPair,
    factions: Sequence[FactionSpec] = DEFAULT_FACTIONS,
    rng: random.Random = None,
) -> List[RoleAssignment]:
    """Shuffle the players once and slice them into factions

    The first players of the permutation take the minority roles in faction
    order, the remainder are civilians.
    """
    rng = rng or random
    resolved = resolve_faction_counts(factions, len(player_ids))

    shuffled = list(player_ids)
    rng.shuffle(shuffled)

    assignments = []
    index = 0
    for spec, count in resolved:
        for player_id in shuffled[index:index + count]:
            word = word_for_role(spec.role, pair) if spec.has_word else None
            assignments.append(RoleAssignment(player_id, spec.role, word))
        index += count

    for player_id in shuffled[index:]:
        assignments.append(RoleAssignment(player_id, PlayerRole.CIVILIAN, pair.civilian))

    return assignments


def speaking_order(players: Iterable[Any], rng: random.Random = None) -> List[str]:
    """Random clue order for alive players; Mr. X never speaks first"""
    rng = rng or random
    alive = [p for p in players if p.is_alive]
    mrx = [p for p in alive if p.role == PlayerRole.MRX]
    order = [p for p in alive if p.role != PlayerRole.MRX]
    rng.shuffle(order)

    for player in mrx:
        if order:
            order.insert(rng.randint(1, len(order)), player)
        else:
            order.append(player)

    return [p.id for p in order]


def tally_votes(votes: Iterable[Any]) -> Dict[str, int]:
    """Votes per target, keyed in the order each target first received a vote

    ``votes`` must already be restricted to a single round and sorted by
    submission time.
    """
    counts = Counter()
    for vote in votes:
        counts[vote.target_id] += 1
    return dict(counts)


def select_elimination(
    vote_counts: Dict[str, int],
    policy: TieBreakPolicy = TieBreakPolicy.NO_ELIMINATION,
) -> Tuple[Optional[str], bool]:
    """Pick the player to eliminate; returns (player_id or None, was_tie)"""
    if not vote_counts:
        return None, False

    top = max(vote_counts.values())
    leaders = [player_id for player_id, count in vote_counts.items() if count == top]
    if len(leaders) == 1:
        return leaders[0], False

    if policy == TieBreakPolicy.LOWEST_PLAYER_ID:
        return min(leaders), True
    if policy == TieBreakPolicy.FIRST_VOTED:
        return leaders[0], True
    return None, True


def alive_counts(players: Iterable[Any]) -> Dict[PlayerRole, int]:
    counts = {role: 0 for role in PlayerRole}
    for player in players:
        if player.is_alive:
            counts[PlayerRole(player.role)] += 1
    return counts


def evaluate_winner(players: Iterable[Any]) -> Optional[RoomOutcome]:
    """Decide whether a faction has won from the alive/role partition

    Without Mr. X players this reduces to the two-faction rules: civilians
    win once no undercover is alive, undercover win at parity.
    """
    counts = alive_counts(players)
    civilians = counts[PlayerRole.CIVILIAN]
    undercover = counts[PlayerRole.UNDERCOVER]
    mrx = counts[PlayerRole.MRX]

    if mrx > 0 and civilians + undercover <= mrx:
        return RoomOutcome.MRX
    if mrx == 0 and undercover == 0:
        return RoomOutcome.CIVILIANS
    if mrx == 0 and undercover > 0 and undercover >= civilians:
        return RoomOutcome.UNDERCOVER
    return None


def is_correct_guess(guess: str, civilian_word: Optional[str]) -> bool:
    """Case-insensitive exact match, surrounding whitespace ignored"""
    if not guess or not civilian_word:
        return False
    return guess.strip().casefold() == civilian_word.strip().casefold()


def clue_phase_complete(players: Iterable[Any]) -> bool:
    alive = [p for p in players if p.is_alive]
    return bool(alive) and all(p.has_given_clue for p in alive)


def voting_complete(players: Iterable[Any], voter_ids: Iterable[str]) -> bool:
    alive_ids = {p.id for p in players if p.is_alive}
    return bool(alive_ids) and alive_ids <= set(voter_ids)


def derive_phase(status: str, players: Iterable[Any]) -> GamePhase:
    if status == "waiting":
        return GamePhase.WAITING
    if status == "finished":
        return GamePhase.FINISHED
    return GamePhase.VOTING if clue_phase_complete(players) else GamePhase.CLUES


def validate_word_pairs(content: Iterable[Any]) -> List[Dict[str, str]]:
    """Shape check for packs coming from outside the curated catalog

    Each pair needs two non-empty strings that differ ignoring case.
    Returns the pairs with surrounding whitespace stripped.
    """
    pairs = []
    for index, pair in enumerate(content or []):
        if isinstance(pair, dict):
            civilian, undercover = pair.get("civilian"), pair.get("undercover")
        else:
            civilian = getattr(pair, "civilian", None)
            undercover = getattr(pair, "undercover", None)

        if not isinstance(civilian, str) or not isinstance(undercover, str):
            raise ValidationError(f"Word pair {index} must contain two strings")
        civilian, undercover = civilian.strip(), undercover.strip()
        if not civilian or not undercover:
            raise ValidationError(f"Word pair {index} contains an empty word")
        if civilian.casefold() == undercover.casefold():
            raise ValidationError(f"Word pair {index} uses the same word twice")
        pairs.append({"civilian": civilian, "undercover": undercover})

    if not pairs:
        raise ValidationError("Word pack must contain at least one word pair")
    return pairs
