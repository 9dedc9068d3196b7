"""
Generic Elimination Seeder: seeds N qualifiers into a power-of-two bracket.

Seeds 1..N arrive already in seed order (all group winners, then runners-up, ...).
Positions follow the canonical bracket order, so if chalk holds seed 1 meets seed 2
in the final. Seeds above N are BYEs and the present seed advances automatically.
Same-group first-round meetings are repaired by swapping seeds between pairings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from chaveamento.config import MAX_ELIMINATION_QUALIFIERS
from chaveamento.models.bracket_node import EliminationPhase
from chaveamento.services.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SeedEntry:
    """Lightweight struct for seeding input."""
    seed: int
    unit_id: int
    source_group: str
    origin: str  # e.g. "1º Grupo A"


@dataclass
class SeededPairing:
    ordem: int
    first: Optional[SeedEntry]
    second: Optional[SeedEntry]

    @property
    def is_bye(self) -> bool:
        return self.first is None or self.second is None

    @property
    def has_collision(self) -> bool:
        return not self.is_bye and self.first.source_group == self.second.source_group


@dataclass
class SeedingResult:
    phase: str
    bracket_size: int
    pairings: List[SeededPairing]
    unavoidable_collisions: List[int] = field(default_factory=list)  # ordem of pairings left as-is

    @property
    def bye_count(self) -> int:
        return sum(1 for p in self.pairings if p.is_bye)


def next_power_of_two(n: int) -> int:
    size = 1
    while size < n:
        size *= 2
    return size


def bracket_order(size: int) -> List[int]:
    """Canonical bracket order for a power-of-two size.

    order(1) = [1]; order(2k) interleaves order(k) with 2k+1-s for each s.
      2  -> [1, 2]
      4  -> [1, 4, 2, 3]
      8  -> [1, 8, 4, 5, 2, 7, 3, 6]
    Consecutive pairs sum to size+1.
    """
    if size < 1 or size & (size - 1):
        raise ValueError(f"size must be a power of two, got {size}")
    order = [1]
    while len(order) < size:
        k = len(order) * 2
        expanded: List[int] = []
        for s in order:
            expanded.append(s)
            expanded.append(k + 1 - s)
        order = expanded
    return order


def phase_for_field(qualifier_count: int) -> str:
    if qualifier_count <= 2:
        return EliminationPhase.FINAL.value
    if qualifier_count <= 4:
        return EliminationPhase.SEMIFINAL.value
    if qualifier_count <= 8:
        return EliminationPhase.QUARTAS.value
    return EliminationPhase.OITAVAS.value


def seed_bracket(entries: List[SeedEntry]) -> SeedingResult:
    """Build first-phase pairings for entries (seed order = list order)."""
    n = len(entries)
    if n < 2:
        raise ValidationError(f"São necessários ao menos 2 classificados para a fase eliminatória (recebido {n})")
    if n > MAX_ELIMINATION_QUALIFIERS:
        raise ValidationError(
            f"Máximo de {MAX_ELIMINATION_QUALIFIERS} classificados para a fase eliminatória (recebido {n})"
        )
    if len({e.source_group for e in entries}) == 1:
        raise ValidationError("Todos os classificados vêm do mesmo grupo; não há fase eliminatória a disputar")

    by_seed = {i + 1: e for i, e in enumerate(entries)}
    size = next_power_of_two(n)
    order = bracket_order(size)

    pairings = [
        SeededPairing(ordem=i // 2 + 1, first=by_seed.get(order[i]), second=by_seed.get(order[i + 1]))
        for i in range(0, size, 2)
    ]
    unavoidable = _repair_collisions(pairings)

    result = SeedingResult(
        phase=phase_for_field(n),
        bracket_size=size,
        pairings=pairings,
        unavoidable_collisions=unavoidable,
    )
    logger.info(
        "Seeded %d qualifiers into %s (bracket of %d, %d byes)",
        n,
        result.phase,
        size,
        result.bye_count,
    )
    return result


def _clean_after_swap(a: SeededPairing, b: SeededPairing) -> bool:
    return not a.has_collision and not b.has_collision


def _try_swap(pairings: List[SeededPairing], i: int, candidates: List[int], attr: str) -> bool:
    current = pairings[i]
    for j in candidates:
        other = pairings[j]
        if other.is_bye:
            continue
        mine, theirs = getattr(current, attr), getattr(other, attr)
        setattr(current, attr, theirs)
        setattr(other, attr, mine)
        if _clean_after_swap(current, other):
            return True
        setattr(current, attr, mine)
        setattr(other, attr, theirs)
    return False


def _repair_collisions(pairings: List[SeededPairing]) -> List[int]:
    """Swap seeds so no real pairing joins two units of the same group, where possible."""
    unavoidable: List[int] = []
    for i, pairing in enumerate(pairings):
        if not pairing.has_collision:
            continue
        forward = list(range(i + 1, len(pairings)))
        backward = list(range(i - 1, -1, -1))
        if _try_swap(pairings, i, forward, "second"):
            continue
        if _try_swap(pairings, i, backward, "second"):
            continue
        if _try_swap(pairings, i, forward + backward, "first"):
            continue
        unavoidable.append(pairing.ordem)
        logger.warning(
            "Unavoidable same-group pairing %d: %s vs %s (%s)",
            pairing.ordem,
            pairing.first.origin,
            pairing.second.origin,
            pairing.first.source_group,
        )
    return unavoidable
