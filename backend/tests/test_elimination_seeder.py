"""
Generic seeding: canonical bracket order, BYEs for missing seeds and same-group repair.
"""
import pytest

from chaveamento.services.elimination_seeder import (
    SeedEntry,
    bracket_order,
    next_power_of_two,
    phase_for_field,
    seed_bracket,
)
from chaveamento.services.errors import ValidationError


def _entries(groups):
    """groups: one group name per seed, in seed order."""
    return [
        SeedEntry(seed=i + 1, unit_id=100 + i, source_group=g, origin=f"seed {i + 1} {g}")
        for i, g in enumerate(groups)
    ]


def _seeds(pairing):
    return (
        pairing.first.seed if pairing.first else None,
        pairing.second.seed if pairing.second else None,
    )


class TestBracketOrder:
    def test_known_orders(self):
        assert bracket_order(2) == [1, 2]
        assert bracket_order(4) == [1, 4, 2, 3]
        assert bracket_order(8) == [1, 8, 4, 5, 2, 7, 3, 6]

    @pytest.mark.parametrize("size", [2, 4, 8, 16])
    def test_pairs_sum_to_size_plus_one(self, size):
        order = bracket_order(size)
        assert sorted(order) == list(range(1, size + 1))
        for i in range(0, size, 2):
            assert order[i] + order[i + 1] == size + 1

    def test_top_seeds_in_opposite_halves(self):
        order = bracket_order(16)
        assert order.index(1) < 8 <= order.index(2)

    def test_rejects_non_power_of_two(self):
        with pytest.raises(ValueError):
            bracket_order(6)

    def test_next_power_of_two(self):
        assert [next_power_of_two(n) for n in (2, 3, 5, 8, 9, 16)] == [2, 4, 8, 8, 16, 16]


class TestPhaseForField:
    @pytest.mark.parametrize(
        "count, phase",
        [(2, "FINAL"), (3, "SEMIFINAL"), (4, "SEMIFINAL"), (6, "QUARTAS"), (8, "QUARTAS"), (9, "OITAVAS"), (16, "OITAVAS")],
    )
    def test_phase(self, count, phase):
        assert phase_for_field(count) == phase


class TestSeedBracket:
    def test_byes_go_to_top_seeds(self):
        result = seed_bracket(_entries(["A", "B", "C", "A", "B"]))
        assert result.phase == "QUARTAS"
        assert result.bracket_size == 8
        assert result.bye_count == 3
        byes = [p for p in result.pairings if p.is_bye]
        assert sorted(p.first.seed for p in byes) == [1, 2, 3]

    def test_full_field_has_no_byes(self):
        result = seed_bracket(_entries(["A", "B", "C", "D", "B", "A", "D", "C"]))
        assert result.bye_count == 0
        assert [p.ordem for p in result.pairings] == [1, 2, 3, 4]
        assert result.unavoidable_collisions == []

    def test_same_group_first_round_is_repaired(self):
        # order(4) pairs 1-4 (A vs A) and 2-3 (B vs B)
        result = seed_bracket(_entries(["A", "B", "B", "A"]))
        assert [_seeds(p) for p in result.pairings] == [(1, 3), (2, 4)]
        assert not any(p.has_collision for p in result.pairings)
        assert result.unavoidable_collisions == []

    def test_unavoidable_collision_is_reported(self):
        result = seed_bracket(_entries(["A", "A", "A", "B"]))
        assert result.unavoidable_collisions == [2]
        assert result.pairings[1].has_collision

    def test_byes_never_count_as_collisions(self):
        result = seed_bracket(_entries(["A", "B", "A"]))
        assert result.bye_count == 1
        assert not any(p.has_collision for p in result.pairings)

    def test_single_qualifier_rejected(self):
        with pytest.raises(ValidationError):
            seed_bracket(_entries(["A"]))

    def test_more_than_sixteen_rejected(self):
        with pytest.raises(ValidationError, match="Máximo"):
            seed_bracket(_entries(["A", "B"] * 9))

    def test_single_group_rejected(self):
        with pytest.raises(ValidationError, match="mesmo grupo"):
            seed_bracket(_entries(["A", "A", "A"]))
