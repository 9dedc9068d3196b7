from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class UnitKind(str, Enum):
    DUPLA = "DUPLA"
    EQUIPE = "EQUIPE"


class CompetitiveUnit(SQLModel, table=True):
    """A duo (dupla) or a team (equipe) competing as one side of a match."""

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    kind: str = Field(default=UnitKind.DUPLA.value)
    name: str
    member_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    member_names: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Group assignment (nullable until grouped)
    group_id: Optional[int] = Field(default=None, foreign_key="tournament_group.id")
    group_name: Optional[str] = Field(default=None)

    # Cumulative stats; only ever changed by relative deltas
    matches_played: int = Field(default=0)
    wins: int = Field(default=0)
    losses: int = Field(default=0)
    points: int = Field(default=0)
    sets_won: int = Field(default=0)
    sets_lost: int = Field(default=0)
    games_won: int = Field(default=0)
    games_lost: int = Field(default=0)
    set_diff: int = Field(default=0)
    game_diff: int = Field(default=0)

    group_position: Optional[int] = Field(default=None)
    qualified: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
