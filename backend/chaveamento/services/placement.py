"""
Final placements when a tournament is closed.

With an elimination phase: the FINAL decides champion and vice; every other
qualified unit is placed by the phase it lost in. Units that never qualified
get the participation placement. A single-group tournament is placed by group
position instead (1st champion, 2nd vice, 3rd semifinalist, ...).
"""
from typing import Dict, Iterable, List, Optional

from chaveamento.config import (
    PLACEMENT_CHAMPION,
    PLACEMENT_OITAVAS,
    PLACEMENT_PARTICIPATION,
    PLACEMENT_QUARTAS,
    PLACEMENT_RUNNER_UP,
    PLACEMENT_SEMIFINALIST,
)
from chaveamento.models.bracket_node import BracketNode, EliminationPhase
from chaveamento.models.match import MatchStatus
from chaveamento.services.errors import ValidationError

# Placement of the unit that lost a node in each phase
LOSER_PLACEMENT = {
    EliminationPhase.FINAL.value: PLACEMENT_RUNNER_UP,
    EliminationPhase.SEMIFINAL.value: PLACEMENT_SEMIFINALIST,
    EliminationPhase.QUARTAS.value: PLACEMENT_QUARTAS,
    EliminationPhase.OITAVAS.value: PLACEMENT_OITAVAS,
}

# Single group, by position; positions past the table get the last entry
GROUP_POSITION_PLACEMENTS = (
    PLACEMENT_CHAMPION,
    PLACEMENT_RUNNER_UP,
    PLACEMENT_SEMIFINALIST,
    PLACEMENT_QUARTAS,
    PLACEMENT_PARTICIPATION,
)


def node_loser(node: BracketNode) -> Optional[int]:
    """Unit eliminated by a finished node; None for BYE nodes."""
    if node.is_bye or node.winner_unit_id is None:
        return None
    if node.winner_unit_id == node.slot_a_unit_id:
        return node.slot_b_unit_id
    return node.slot_a_unit_id


def elimination_placements(nodes: List[BracketNode], unit_ids: Iterable[int]) -> Dict[int, str]:
    """Map every unit of the tournament to its placement; the bracket must be fully decided."""
    pending = [f"{n.phase} {n.ordem}" for n in nodes if n.status != MatchStatus.FINISHED.value]
    if pending:
        raise ValidationError(f"Há confrontos pendentes na fase eliminatória: {', '.join(pending)}")
    final = next((n for n in nodes if n.phase == EliminationPhase.FINAL.value), None)
    if final is None or final.winner_unit_id is None:
        raise ValidationError("A final ainda não foi disputada")

    placements: Dict[int, str] = {final.winner_unit_id: PLACEMENT_CHAMPION}
    for node in nodes:
        loser = node_loser(node)
        if loser is not None:
            placements[loser] = LOSER_PLACEMENT[node.phase]
    for unit_id in unit_ids:
        placements.setdefault(unit_id, PLACEMENT_PARTICIPATION)
    return placements


def group_placements(ranked_unit_ids: List[int]) -> Dict[int, str]:
    last = len(GROUP_POSITION_PLACEMENTS) - 1
    return {
        unit_id: GROUP_POSITION_PLACEMENTS[min(i, last)]
        for i, unit_id in enumerate(ranked_unit_ids)
    }
