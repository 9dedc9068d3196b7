"""
Relative statistic deltas derived from a match result.

Every stat mutation goes through a StatDelta so that an edit is expressed as
"apply old.negated(), then apply new" and re-submitting an identical result nets to zero.
"""
from dataclasses import dataclass, fields
from typing import Tuple

from chaveamento.services.score_parser import SIDE_A, ParsedScore

POINTS_PER_WIN = 3
POINTS_PER_LOSS = 0


@dataclass(frozen=True)
class StatDelta:
    matches_played: int = 0
    wins: int = 0
    losses: int = 0
    points: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    games_won: int = 0
    games_lost: int = 0

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def game_diff(self) -> int:
        return self.games_won - self.games_lost

    def negated(self) -> "StatDelta":
        return StatDelta(**{f.name: -getattr(self, f.name) for f in fields(self)})

    def is_zero(self) -> bool:
        return all(getattr(self, f.name) == 0 for f in fields(self))


def result_deltas(parsed: ParsedScore) -> Tuple[StatDelta, StatDelta]:
    """Return (side_a_delta, side_b_delta) for a decided result."""
    a_won = parsed.winner_side == SIDE_A
    side_a = StatDelta(
        matches_played=1,
        wins=1 if a_won else 0,
        losses=0 if a_won else 1,
        points=POINTS_PER_WIN if a_won else POINTS_PER_LOSS,
        sets_won=parsed.side_a_sets_won,
        sets_lost=parsed.side_b_sets_won,
        games_won=parsed.side_a_games,
        games_lost=parsed.side_b_games,
    )
    side_b = StatDelta(
        matches_played=1,
        wins=0 if a_won else 1,
        losses=1 if a_won else 0,
        points=POINTS_PER_LOSS if a_won else POINTS_PER_WIN,
        sets_won=parsed.side_b_sets_won,
        sets_lost=parsed.side_a_sets_won,
        games_won=parsed.side_b_games,
        games_lost=parsed.side_a_games,
    )
    return side_a, side_b
