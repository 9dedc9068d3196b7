"""Score parsing: structured set lists, display strings and result validation."""
import pytest

from chaveamento.services.errors import ValidationError
from chaveamento.services.score_parser import SIDE_A, SIDE_B, parse_score, require_score


class TestParseScore:
    def test_structured_sets(self):
        parsed = parse_score({"sets": [{"a": 6, "b": 3}, {"a": 4, "b": 6}, {"a": 10, "b": 7}]})
        assert parsed.sets == [(6, 3), (4, 6), (10, 7)]
        assert parsed.side_a_sets_won == 2
        assert parsed.side_b_sets_won == 1
        assert parsed.side_a_games == 20
        assert parsed.side_b_games == 16
        assert parsed.winner_side == SIDE_A

    def test_string_with_commas(self):
        parsed = parse_score("3-6, 2-6")
        assert parsed.sets == [(3, 6), (2, 6)]
        assert parsed.winner_side == SIDE_B

    def test_display_key(self):
        parsed = parse_score({"display": "8-4"})
        assert parsed.sets == [(8, 4)]

    def test_garbage_returns_none(self):
        assert parse_score("six-three") is None
        assert parse_score("6-3-1") is None
        assert parse_score(None) is None
        assert parse_score({}) is None

    def test_display_round_trip_text(self):
        parsed = parse_score({"sets": [{"a": 6, "b": 4}, {"a": 7, "b": 5}]})
        assert parsed.display() == "6-4 7-5"
        assert parsed.to_json() == {"sets": [{"a": 6, "b": 4}, {"a": 7, "b": 5}]}


class TestRequireScore:
    def test_tied_set_rejected(self):
        with pytest.raises(ValidationError, match="empatado"):
            require_score("6-6")

    def test_split_sets_without_decider_rejected(self):
        with pytest.raises(ValidationError, match="não há vencedor"):
            require_score("6-3 3-6")

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            require_score({"sets": []})

    def test_negative_games_rejected(self):
        with pytest.raises(ValidationError, match="negativos"):
            require_score({"sets": [{"a": -1, "b": 6}]})

    def test_valid_result(self):
        parsed = require_score("6-2")
        assert parsed.winner_side == SIDE_A
