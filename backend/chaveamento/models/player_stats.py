from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class PlayerStats(SQLModel, table=True):
    """Per-player statistics for one tournament, fed by group and elimination results."""

    __table_args__ = (SAUniqueConstraint("tournament_id", "player_id", name="uq_player_stats_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_id: int
    player_name: str
    unit_id: Optional[int] = Field(default=None)

    matches_played: int = Field(default=0)
    wins: int = Field(default=0)
    losses: int = Field(default=0)
    sets_won: int = Field(default=0)
    sets_lost: int = Field(default=0)
    games_won: int = Field(default=0)
    games_lost: int = Field(default=0)

    group_id: Optional[int] = Field(default=None)
    group_name: Optional[str] = Field(default=None)
    group_position: Optional[int] = Field(default=None)
    qualified: bool = Field(default=False)

    # Set once, when the tournament is closed
    placement: Optional[str] = Field(default=None)
    placement_points: int = Field(default=0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
