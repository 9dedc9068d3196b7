"""
Tests for duo formation with protected seeds and the partner-history combination space.
"""
import random

import pytest

from chaveamento.services.errors import ValidationError
from chaveamento.services.pair_formation import (
    RosterPlayer,
    combination_space,
    form_pairs,
    pair_key,
)


def _roster(n: int, protected: set = frozenset()) -> list:
    return [RosterPlayer(player_id=i, name=f"P{i}", protected=i in protected) for i in range(1, n + 1)]


class TestPairKey:
    def test_order_independent(self):
        assert pair_key(7, 3) == pair_key(3, 7) == "3|7"


class TestCombinationSpace:
    def test_counts_remaining(self):
        total, remaining = combination_space([1, 2, 3], {"1|2"})
        assert total == 3
        assert remaining == 2

    def test_single_seed_has_no_space(self):
        assert combination_space([1], set()) == (0, 0)


class TestFormPairs:
    def test_odd_roster_rejected(self):
        with pytest.raises(ValidationError, match="ímpar"):
            form_pairs(_roster(7), set(), random.Random(1))

    def test_too_many_protected_rejected(self):
        with pytest.raises(ValidationError, match="excedem"):
            form_pairs(_roster(6, {1, 2, 3, 4}), set(), random.Random(1))

    def test_protected_never_paired_together(self):
        protected = {1, 2, 3}
        for seed in range(20):
            plan = form_pairs(_roster(10, protected), set(), random.Random(seed))
            assert not plan.free_pairing
            assert len(plan.pairs) == 5
            for pair in plan.pairs:
                assert not pair.both_protected
            seeded_pairs = [p for p in plan.pairs if p.first.protected or p.second.protected]
            assert len(seeded_pairs) == 3

    def test_every_player_used_once(self):
        plan = form_pairs(_roster(12, {1, 2}), set(), random.Random(3))
        ids = [p.first.player_id for p in plan.pairs] + [p.second.player_id for p in plan.pairs]
        assert sorted(ids) == list(range(1, 13))

    def test_exhausted_space_allows_free_pairing(self):
        protected = {1, 2, 3}
        realized = {pair_key(1, 2), pair_key(1, 3), pair_key(2, 3)}
        plan = form_pairs(_roster(8, protected), realized, random.Random(5))
        assert plan.free_pairing
        assert plan.combinations_total == 3
        assert plan.combinations_remaining == 0

    def test_partially_realized_space_stays_constrained(self):
        protected = {1, 2, 3}
        realized = {pair_key(1, 2), pair_key(1, 3)}
        plan = form_pairs(_roster(8, protected), realized, random.Random(5))
        assert not plan.free_pairing
        assert plan.combinations_remaining == 1

    def test_free_pairing_ignores_protected_majority(self):
        # Infeasible under the constraint, but the space is exhausted
        protected = {1, 2, 3, 4}
        realized = {pair_key(a, b) for a in protected for b in protected if a < b}
        plan = form_pairs(_roster(6, protected), realized, random.Random(2))
        assert plan.free_pairing
        assert len(plan.pairs) == 3

    def test_no_protected_seeds(self):
        plan = form_pairs(_roster(4), set(), random.Random(9))
        assert not plan.free_pairing
        assert len(plan.pairs) == 2
        assert plan.pairs[0].name.count(" / ") == 1
