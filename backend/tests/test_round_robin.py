"""
Tests for group partition, group assignment and round-robin match generation.
"""
from itertools import combinations

import pytest

from chaveamento.services.errors import ValidationError
from chaveamento.services.round_robin import (
    deal_into_groups,
    deal_serpentine,
    group_name,
    partition_group_sizes,
    round_robin_pairings,
    total_matches,
)


class TestPartition:
    """Prefer 3s; remainder 1 → one 4; remainder 2 → two 4s; 5 is one group."""

    @pytest.mark.parametrize(
        "units, expected",
        [
            (3, [3]),
            (4, [4]),
            (5, [5]),
            (6, [3, 3]),
            (7, [3, 4]),
            (8, [4, 4]),
            (9, [3, 3, 3]),
            (10, [3, 3, 4]),
            (11, [3, 4, 4]),
            (16, [3, 3, 3, 3, 4]),
        ],
    )
    def test_sizes(self, units, expected):
        assert partition_group_sizes(units) == expected

    def test_eight_units_use_remainder_two_branch(self):
        # 8 = 2×3 + 2 → both groups of 3 grow to 4
        sizes = partition_group_sizes(8)
        assert sizes == [4, 4]
        assert sum(sizes) == 8

    def test_five_is_never_split(self):
        assert partition_group_sizes(5) != [3, 2]

    @pytest.mark.parametrize("units", [0, 1, 2])
    def test_too_few_units(self, units):
        with pytest.raises(ValidationError):
            partition_group_sizes(units)

    def test_sizes_always_sum_to_units(self):
        for n in range(3, 40):
            sizes = partition_group_sizes(n)
            assert sum(sizes) == n
            assert all(s in (3, 4, 5) for s in sizes)


class TestGroupNames:
    def test_letters(self):
        assert [group_name(i) for i in range(3)] == ["Grupo A", "Grupo B", "Grupo C"]


class TestDealing:
    def test_priority_units_spread_across_groups(self):
        units = list(range(1, 10))  # 9 units → [3, 3, 3]
        priority = {7, 8, 9}
        groups = deal_into_groups(units, [3, 3, 3], lambda u: u in priority)
        assert [len(g) for g in groups] == [3, 3, 3]
        for g in groups:
            assert len(priority.intersection(g)) == 1

    def test_more_priority_than_groups_wraps(self):
        units = list(range(1, 8))  # [3, 4]
        priority = {1, 2, 3}
        groups = deal_into_groups(units, [3, 4], lambda u: u in priority)
        assert groups[0][:2] == [1, 3]
        assert groups[1][0] == 2
        assert sorted(groups[0] + groups[1]) == units

    def test_mismatched_sizes_rejected(self):
        with pytest.raises(ValidationError):
            deal_into_groups([1, 2, 3], [4], lambda u: False)

    def test_serpentine(self):
        groups = deal_serpentine(list("abcdefgh"), [4, 4])
        # a→A, b→B, c→B, d→A, e→A, f→B, g→B, h→A
        assert groups == [["a", "d", "e", "h"], ["b", "c", "f", "g"]]

    def test_serpentine_skips_full_groups(self):
        groups = deal_serpentine(list("abcdefg"), [3, 4])
        assert [len(g) for g in groups] == [3, 4]


class TestPairings:
    @pytest.mark.parametrize("size", [3, 4, 5])
    def test_every_pair_once(self, size):
        pairs = [(a, b) for _, _, a, b in round_robin_pairings(size)]
        assert len(pairs) == total_matches(size)
        assert sorted(pairs) == sorted(combinations(range(size), 2))

    def test_no_unit_plays_twice_in_a_round(self):
        by_round = {}
        for rnd, _, a, b in round_robin_pairings(4):
            by_round.setdefault(rnd, []).extend([a, b])
        for players in by_round.values():
            assert len(players) == len(set(players))

    def test_total_matches(self):
        assert [total_matches(n) for n in (3, 4, 5)] == [3, 6, 10]
