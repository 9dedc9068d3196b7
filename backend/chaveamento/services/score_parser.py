"""
Score parser for set-based match results.

Supports formats like:
  {"sets": [{"a": 6, "b": 3}, {"a": 4, "b": 6}]}  → structured set list
  "6-3 4-6 10-7"                                  → 3 sets, games summed
  "6-3, 4-6, 10-7"                                → comma-separated variant
  {"display": "8-4"}                              → extracts display string first

parse_score returns None on parse failure (non-fatal); require_score raises
ValidationError and also rejects results with no winner.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from chaveamento.services.errors import ValidationError

SIDE_A = "A"
SIDE_B = "B"


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (side_a_games, side_b_games) per set
    side_a_sets_won: int
    side_b_sets_won: int
    side_a_games: int
    side_b_games: int

    @property
    def winner_side(self) -> Optional[str]:
        if self.side_a_sets_won > self.side_b_sets_won:
            return SIDE_A
        if self.side_b_sets_won > self.side_a_sets_won:
            return SIDE_B
        return None

    def to_json(self) -> Dict[str, Any]:
        return {"sets": [{"a": a, "b": b} for a, b in self.sets]}

    def display(self) -> str:
        return " ".join(f"{a}-{b}" for a, b in self.sets)


def parse_score(score_json: Optional[Union[str, Dict[str, Any]]]) -> Optional[ParsedScore]:
    """Parse a score blob into structured set/game counts.

    Returns None if the score cannot be parsed.
    """
    if not score_json:
        return None

    raw: Optional[str] = None
    if isinstance(score_json, str):
        raw = score_json
    elif isinstance(score_json, dict):
        if "sets" in score_json and isinstance(score_json["sets"], list):
            return _parse_structured_sets(score_json["sets"])
        raw = str(score_json.get("display") or score_json.get("score") or "")
    if not raw or not raw.strip():
        return None

    return _parse_score_string(raw.strip())


def require_score(score_json: Optional[Union[str, Dict[str, Any]]]) -> ParsedScore:
    """Parse a submitted result; the winner must follow from the set list alone."""
    parsed = parse_score(score_json)
    if parsed is None or not parsed.sets:
        raise ValidationError("Placar inválido: informe ao menos um set no formato 6-3")
    for a, b in parsed.sets:
        if a < 0 or b < 0:
            raise ValidationError("Placar inválido: games não podem ser negativos")
        if a == b:
            raise ValidationError(f"Placar inválido: set empatado ({a}-{b})")
    if parsed.winner_side is None:
        raise ValidationError("Placar inválido: sets empatados, não há vencedor")
    return parsed


def _build(sets: List[Tuple[int, int]]) -> ParsedScore:
    return ParsedScore(
        sets=sets,
        side_a_sets_won=sum(1 for a, b in sets if a > b),
        side_b_sets_won=sum(1 for a, b in sets if b > a),
        side_a_games=sum(a for a, _ in sets),
        side_b_games=sum(b for _, b in sets),
    )


def _parse_structured_sets(sets_list: list) -> Optional[ParsedScore]:
    sets: List[Tuple[int, int]] = []
    for s in sets_list:
        if not isinstance(s, dict):
            return None
        try:
            a = int(s.get("a", 0))
            b = int(s.get("b", 0))
        except (TypeError, ValueError):
            return None
        sets.append((a, b))
    return _build(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    """Parse strings like '8-4', '6-3 4-6 10-7', '6-3, 4-6, 10-7'."""
    # Normalize: replace commas with spaces, collapse whitespace
    normalized = raw.replace(",", " ").strip()
    parts = normalized.split()

    sets: List[Tuple[int, int]] = []
    for part in parts:
        pair = part.split("-")
        if len(pair) != 2:
            return None
        try:
            a = int(pair[0])
            b = int(pair[1])
        except ValueError:
            return None
        sets.append((a, b))

    if not sets:
        return None

    return _build(sets)
