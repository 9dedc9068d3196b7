from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class EliminationPhase(str, Enum):
    OITAVAS = "OITAVAS"
    QUARTAS = "QUARTAS"
    SEMIFINAL = "SEMIFINAL"
    FINAL = "FINAL"


# Earliest phase first; the FINAL has no successor
PHASE_SEQUENCE: List[str] = [p.value for p in EliminationPhase]

PHASE_LABELS = {
    EliminationPhase.OITAVAS.value: "Oitavas",
    EliminationPhase.QUARTAS.value: "Quartas",
    EliminationPhase.SEMIFINAL.value: "Semifinal",
    EliminationPhase.FINAL.value: "Final",
}

BYE_ORIGIN = "BYE"
SLOT_A = "A"
SLOT_B = "B"


def next_phase(phase: str) -> Optional[str]:
    idx = PHASE_SEQUENCE.index(phase)
    if idx + 1 >= len(PHASE_SEQUENCE):
        return None
    return PHASE_SEQUENCE[idx + 1]


def winner_origin(phase: str, ordem: int) -> str:
    """Symbolic origin for a slot fed by another node, e.g. 'Vencedor Quartas 2'."""
    return f"Vencedor {PHASE_LABELS[phase]} {ordem}"


class BracketNode(SQLModel, table=True):
    """Elimination confronto. Slots hold a unit id, a symbolic origin, or the BYE sentinel."""

    __table_args__ = (SAUniqueConstraint("tournament_id", "phase", "ordem", name="uq_bracket_node_position"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: str
    ordem: int  # 1-based within phase

    slot_a_unit_id: Optional[int] = Field(default=None)
    slot_a_origin: Optional[str] = Field(default=None)
    slot_b_unit_id: Optional[int] = Field(default=None)
    slot_b_origin: Optional[str] = Field(default=None)

    # Successor pointer (absent only for the FINAL)
    next_node_id: Optional[int] = Field(default=None)
    next_slot: Optional[str] = Field(default=None)  # "A" | "B"

    is_bye: bool = Field(default=False)
    status: str = Field(default="SCHEDULED")  # SCHEDULED | FINISHED
    winner_unit_id: Optional[int] = Field(default=None)
    match_id: Optional[int] = Field(default=None)
    score_display: Optional[str] = Field(default=None)
    revision: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = Field(default=None)
