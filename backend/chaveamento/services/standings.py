"""
Standings Resolver: ranks units inside a group and orders qualifiers for seeding.

Group cascade, applied until the order is unique:
  1. points (3 per win)
  2. game differential
  3. head-to-head, only when exactly two units are tied on (1)+(2)
  4. set differential
  5. games won
  6. draw for ties still left inside a block of three or more

Draws are non-deterministic by default and are logged as such for audit.
"""
import logging
import random
from dataclasses import dataclass
from itertools import groupby
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from chaveamento.config import DRAW_MODE_DETERMINISTIC, DRAW_MODE_RANDOM

logger = logging.getLogger(__name__)


@dataclass
class StandingRow:
    unit_id: int
    name: str = ""
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0
    position: Optional[int] = None

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_diff(self) -> int:
        return self.games_won - self.games_lost


@dataclass(frozen=True)
class DirectResult:
    """Finished match between two units, used for head-to-head."""

    unit_a_id: int
    unit_b_id: int
    winner_unit_id: int


class TieBreakDraw:
    """Resolves residual ties; random by default, by unit id in deterministic mode."""

    def __init__(self, rng: Optional[random.Random] = None, mode: str = DRAW_MODE_RANDOM):
        self.rng = rng or random.Random()
        self.mode = mode

    def __call__(self, rows: List[StandingRow], context: str) -> List[StandingRow]:
        if self.mode == DRAW_MODE_DETERMINISTIC:
            return sorted(rows, key=lambda r: r.unit_id)
        drawn = list(rows)
        self.rng.shuffle(drawn)
        logger.warning(
            "Non-deterministic resolution: %s tie between units %s drawn as %s",
            context,
            [r.unit_id for r in rows],
            [r.unit_id for r in drawn],
        )
        return drawn


def _blocks(rows: Iterable[StandingRow], key: Callable[[StandingRow], Tuple]) -> List[List[StandingRow]]:
    ordered = sorted(rows, key=key)
    return [list(block) for _, block in groupby(ordered, key=key)]


def _primary_key(row: StandingRow) -> Tuple[int, int]:
    return (-row.points, -row.game_diff)


def _secondary_key(row: StandingRow) -> Tuple[int, int]:
    return (-row.set_diff, -row.games_won)


def _head_to_head_winner(a: StandingRow, b: StandingRow, results: Sequence[DirectResult]) -> Optional[int]:
    for r in results:
        if {r.unit_a_id, r.unit_b_id} == {a.unit_id, b.unit_id}:
            return r.winner_unit_id
    return None


def rank_group(
    rows: Sequence[StandingRow],
    results: Sequence[DirectResult],
    draw: Optional[TieBreakDraw] = None,
) -> List[StandingRow]:
    """Return rows ordered best-first with position set 1..n."""
    draw = draw or TieBreakDraw()
    ranked: List[StandingRow] = []

    for block in _blocks(rows, _primary_key):
        if len(block) == 1:
            ranked.extend(block)
            continue

        if len(block) == 2:
            winner = _head_to_head_winner(block[0], block[1], results)
            if winner is not None:
                ranked.extend(sorted(block, key=lambda r: r.unit_id != winner))
                continue
            # Never met: fall through to set diff / games won, then keep unit order
            for sub in _blocks(block, _secondary_key):
                ranked.extend(sorted(sub, key=lambda r: r.unit_id))
            continue

        # Three or more tied: head-to-head is skipped
        for sub in _blocks(block, _secondary_key):
            ranked.extend(sub if len(sub) == 1 else draw(sub, "group standings"))

    for position, row in enumerate(ranked, start=1):
        row.position = position
    return ranked


def seed_order(
    ranked_groups: Sequence[Sequence[StandingRow]],
    qualifiers_per_group: int,
    draw: Optional[TieBreakDraw] = None,
) -> List[StandingRow]:
    """
    Order qualifiers for the generic seeder: all 1st places, then all 2nd places, ...
    Within one position: points, game differential, set differential, games won, draw.
    """
    draw = draw or TieBreakDraw()
    by_position: Dict[int, List[StandingRow]] = {}
    for group_rows in ranked_groups:
        for row in group_rows[:qualifiers_per_group]:
            by_position.setdefault(row.position or 0, []).append(row)

    seeded: List[StandingRow] = []
    for position in sorted(by_position):
        key = lambda r: (-r.points, -r.game_diff, -r.set_diff, -r.games_won)  # noqa: E731
        for block in _blocks(by_position[position], key):
            seeded.extend(block if len(block) == 1 else draw(block, f"qualifier seeding (position {position})"))
    return seeded
