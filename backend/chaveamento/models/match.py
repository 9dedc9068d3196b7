from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class MatchStatus(str, Enum):
    SCHEDULED = "SCHEDULED"
    FINISHED = "FINISHED"


GROUP_PHASE = "GRUPOS"


class Match(SQLModel, table=True):
    """Group-stage match or the leaf match recorded on an elimination node."""

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    phase: str = Field(default=GROUP_PHASE)  # "GRUPOS" | "OITAVAS" | "QUARTAS" | "SEMIFINAL" | "FINAL"
    group_id: Optional[int] = Field(default=None, foreign_key="tournament_group.id")
    node_id: Optional[int] = Field(default=None)  # BracketNode for elimination leaves

    unit_a_id: int
    unit_b_id: int
    unit_a_name: str
    unit_b_name: str

    # {"sets": [{"a": 6, "b": 3}, ...]}; winner is always derived from it
    score_json: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))
    sets_a: int = Field(default=0)
    sets_b: int = Field(default=0)
    games_a: int = Field(default=0)
    games_b: int = Field(default=0)
    winner_unit_id: Optional[int] = Field(default=None)

    status: str = Field(default=MatchStatus.SCHEDULED.value)
    revision: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = Field(default=None)
