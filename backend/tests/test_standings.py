"""
Standings cascade: points, game diff, head-to-head (two-way only), set diff, games won, draw.
"""
import random

from chaveamento.config import DRAW_MODE_DETERMINISTIC
from chaveamento.services.standings import (
    DirectResult,
    StandingRow,
    TieBreakDraw,
    rank_group,
    seed_order,
)


def _row(unit_id, points=0, gw=0, gl=0, sw=0, sl=0, group="Grupo A"):
    return StandingRow(
        unit_id=unit_id,
        name=f"U{unit_id}",
        group_name=group,
        points=points,
        games_won=gw,
        games_lost=gl,
        sets_won=sw,
        sets_lost=sl,
    )


def _ids(rows):
    return [r.unit_id for r in rows]


class TestRankGroup:
    def test_points_first(self):
        ranked = rank_group([_row(1, points=3), _row(2, points=6), _row(3)], [])
        assert _ids(ranked) == [2, 1, 3]
        assert [r.position for r in ranked] == [1, 2, 3]

    def test_game_diff_breaks_points_tie(self):
        ranked = rank_group([_row(1, points=3, gw=10, gl=9), _row(2, points=3, gw=12, gl=6)], [])
        assert _ids(ranked) == [2, 1]

    def test_two_way_tie_uses_head_to_head(self):
        # Unit 2 has the better set diff, but unit 1 won the direct match
        rows = [
            _row(1, points=3, gw=10, gl=10, sw=1, sl=2),
            _row(2, points=3, gw=10, gl=10, sw=2, sl=1),
            _row(3, points=0, gw=5, gl=12),
        ]
        results = [DirectResult(1, 2, winner_unit_id=1)]
        ranked = rank_group(rows, results)
        assert _ids(ranked) == [1, 2, 3]

    def test_three_way_tie_skips_head_to_head(self):
        # Circular results; unit 3 beat unit 1 directly but set diff decides
        rows = [
            _row(1, points=3, gw=12, gl=12, sw=2, sl=1),
            _row(2, points=3, gw=12, gl=12, sw=1, sl=2),
            _row(3, points=3, gw=12, gl=12, sw=3, sl=3),
        ]
        results = [
            DirectResult(1, 2, winner_unit_id=1),
            DirectResult(2, 3, winner_unit_id=2),
            DirectResult(3, 1, winner_unit_id=3),
        ]
        ranked = rank_group(rows, results)
        assert _ids(ranked) == [1, 3, 2]

    def test_three_way_tie_falls_to_games_won(self):
        rows = [
            _row(1, points=3, gw=10, gl=10, sw=2, sl=2),
            _row(2, points=3, gw=14, gl=14, sw=2, sl=2),
            _row(3, points=3, gw=12, gl=12, sw=2, sl=2),
        ]
        ranked = rank_group(rows, [])
        assert _ids(ranked) == [2, 3, 1]

    def test_residual_three_way_tie_is_drawn(self, caplog):
        rows = [_row(i, points=3, gw=10, gl=10, sw=2, sl=2) for i in (1, 2, 3)]
        ranked = rank_group(rows, [], TieBreakDraw(random.Random(7)))
        assert sorted(_ids(ranked)) == [1, 2, 3]
        assert "Non-deterministic resolution" in caplog.text

    def test_deterministic_draw_mode_orders_by_unit_id(self):
        rows = [_row(i, points=3, gw=10, gl=10, sw=2, sl=2) for i in (9, 4, 6)]
        ranked = rank_group(rows, [], TieBreakDraw(mode=DRAW_MODE_DETERMINISTIC))
        assert _ids(ranked) == [4, 6, 9]

    def test_two_way_tie_without_direct_match_uses_set_diff(self):
        rows = [_row(1, points=3, sw=1, sl=1), _row(2, points=3, sw=2, sl=1)]
        ranked = rank_group(rows, [])
        assert _ids(ranked) == [2, 1]


class TestSeedOrder:
    def test_positions_first_then_performance(self):
        group_a = rank_group([_row(1, points=6, gw=12, gl=4), _row(2, points=3), _row(3)], [])
        group_b = rank_group(
            [_row(4, points=6, gw=12, gl=8, group="Grupo B"), _row(5, points=3, gw=9, gl=7, group="Grupo B"), _row(6, group="Grupo B")],
            [],
        )
        seeded = seed_order([group_a, group_b], qualifiers_per_group=2)
        # Both winners first (better game diff first), then runners-up
        assert _ids(seeded) == [1, 4, 5, 2]

    def test_only_top_n_per_group(self):
        group_a = rank_group([_row(1, points=6), _row(2, points=3), _row(3)], [])
        seeded = seed_order([group_a], qualifiers_per_group=1)
        assert _ids(seeded) == [1]
