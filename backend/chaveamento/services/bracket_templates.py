"""
Template Elimination Generator: fixed 15-node brackets for the team format.

Topology is looked up, not computed. Each template lists the eight OITAVAS slot pairs
as "<position><group letter>" tokens ("1A", "2C") or BYE (None), plus which two
OITAVAS nodes feed each QUARTAS node. QUARTAS → SEMIFINAL → FINAL is always
Q1+Q2 → S1, Q3+Q4 → S2, S1+S2 → F.

Group counts 2–4 have classic layouts that start at SEMIFINAL/QUARTAS; here they are
expressed in the same 15-node shape, using BYE-vs-BYE nodes that finish without a
winner and hand a BYE to the next phase.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from chaveamento.models.bracket_node import (
    BYE_ORIGIN,
    SLOT_A,
    SLOT_B,
    EliminationPhase,
    winner_origin,
)
from chaveamento.services.errors import ValidationError

Slot = Optional[str]  # "1A" / "2C" / None for BYE

SEQUENTIAL_FEEDERS: Tuple[Tuple[int, int], ...] = ((1, 2), (3, 4), (5, 6), (7, 8))


@dataclass(frozen=True)
class BracketTemplate:
    group_count: int
    round_of_16: Tuple[Tuple[Slot, Slot], ...]  # OITAVAS 1..8
    quarter_feeders: Tuple[Tuple[int, int], ...] = SEQUENTIAL_FEEDERS  # QUARTAS 1..4 ← (slot A, slot B)

    @property
    def bye_count(self) -> int:
        return sum(1 for a, b in self.round_of_16 if a is None or b is None)


# =============================================================================
# Templates (group count → layout)
# =============================================================================

BRACKET_TEMPLATES: Dict[int, BracketTemplate] = {
    # SF 1A–2B, 1B–2A
    2: BracketTemplate(
        group_count=2,
        round_of_16=(
            ("1A", None), (None, None), ("2B", None), (None, None),
            ("1B", None), (None, None), ("2A", None), (None, None),
        ),
    ),
    # QF 1A–BYE, 1C–2B, 1B–BYE, 2A–2C
    3: BracketTemplate(
        group_count=3,
        round_of_16=(
            ("1A", None), (None, None), ("1C", None), ("2B", None),
            ("1B", None), (None, None), ("2A", None), ("2C", None),
        ),
    ),
    # QF 1A–2B, 1C–2D, 1B–2A, 1D–2C
    4: BracketTemplate(
        group_count=4,
        round_of_16=(
            ("1A", None), ("2B", None), ("1C", None), ("2D", None),
            ("1B", None), ("2A", None), ("1D", None), ("2C", None),
        ),
    ),
    5: BracketTemplate(
        group_count=5,
        round_of_16=(
            ("1A", None), ("1D", None), ("1B", None), ("1E", None),
            ("1C", None), ("2A", None), ("2B", "2C"), ("2D", "2E"),
        ),
        quarter_feeders=((1, 7), (4, 2), (3, 8), (5, 6)),
    ),
    6: BracketTemplate(
        group_count=6,
        round_of_16=(
            ("1A", None), ("1C", None), ("1B", None), ("1D", None),
            ("2B", "2C"), ("2D", "2A"), ("1E", "2F"), ("1F", "2E"),
        ),
        quarter_feeders=((1, 5), (4, 7), (3, 6), (2, 8)),
    ),
    7: BracketTemplate(
        group_count=7,
        round_of_16=(
            ("1A", None), ("1E", "2F"), ("1C", "2D"), ("1G", "2B"),
            ("1B", None), ("1F", "2E"), ("1D", "2C"), ("2A", "2G"),
        ),
    ),
    8: BracketTemplate(
        group_count=8,
        round_of_16=(
            ("1A", "2B"), ("1C", "2D"), ("1E", "2F"), ("1G", "2H"),
            ("1B", "2A"), ("1D", "2C"), ("1F", "2E"), ("1H", "2G"),
        ),
    ),
}


def template_for(group_count: int) -> BracketTemplate:
    template = BRACKET_TEMPLATES.get(group_count)
    if template is None:
        raise ValidationError(
            f"Não há chaveamento pré-definido para {group_count} grupos (suportado: 2 a 8 grupos)"
        )
    return template


def parse_slot_token(token: str) -> Tuple[int, str]:
    """'2C' → (2, 'C')"""
    return int(token[:-1]), token[-1]


# =============================================================================
# Node plan (top-down: FINAL, SEMIFINAL×2, QUARTAS×4, OITAVAS×8)
# =============================================================================

@dataclass
class PlannedNode:
    phase: str
    ordem: int
    slot_a: Slot = None
    slot_b: Slot = None
    slot_a_origin: Optional[str] = None
    slot_b_origin: Optional[str] = None
    next_phase: Optional[str] = None
    next_ordem: Optional[int] = None
    next_slot: Optional[str] = None
    is_bye: bool = False


def plan_nodes(template: BracketTemplate) -> List[PlannedNode]:
    """Return the 15 nodes of a template in creation order (successors first)."""
    final = EliminationPhase.FINAL.value
    semi = EliminationPhase.SEMIFINAL.value
    quarter = EliminationPhase.QUARTAS.value
    r16 = EliminationPhase.OITAVAS.value

    nodes: List[PlannedNode] = [
        PlannedNode(
            phase=final,
            ordem=1,
            slot_a_origin=winner_origin(semi, 1),
            slot_b_origin=winner_origin(semi, 2),
        )
    ]

    for ordem in (1, 2):
        first_q = 2 * ordem - 1
        nodes.append(
            PlannedNode(
                phase=semi,
                ordem=ordem,
                slot_a_origin=winner_origin(quarter, first_q),
                slot_b_origin=winner_origin(quarter, first_q + 1),
                next_phase=final,
                next_ordem=1,
                next_slot=SLOT_A if ordem == 1 else SLOT_B,
            )
        )

    # Which quarter/slot each OITAVAS node feeds
    successor: Dict[int, Tuple[int, str]] = {}
    for q_ordem, (feed_a, feed_b) in enumerate(template.quarter_feeders, start=1):
        successor[feed_a] = (q_ordem, SLOT_A)
        successor[feed_b] = (q_ordem, SLOT_B)
        nodes.append(
            PlannedNode(
                phase=quarter,
                ordem=q_ordem,
                slot_a_origin=winner_origin(r16, feed_a),
                slot_b_origin=winner_origin(r16, feed_b),
                next_phase=semi,
                next_ordem=(q_ordem + 1) // 2,
                next_slot=SLOT_A if q_ordem % 2 == 1 else SLOT_B,
            )
        )

    for ordem, (slot_a, slot_b) in enumerate(template.round_of_16, start=1):
        q_ordem, q_slot = successor[ordem]
        nodes.append(
            PlannedNode(
                phase=r16,
                ordem=ordem,
                slot_a=slot_a,
                slot_b=slot_b,
                slot_a_origin=_qualifier_origin(slot_a),
                slot_b_origin=_qualifier_origin(slot_b),
                next_phase=quarter,
                next_ordem=q_ordem,
                next_slot=q_slot,
                is_bye=slot_a is None or slot_b is None,
            )
        )
    return nodes


def _qualifier_origin(token: Slot) -> str:
    if token is None:
        return BYE_ORIGIN
    position, letter = parse_slot_token(token)
    return f"{position}º Grupo {letter}"
