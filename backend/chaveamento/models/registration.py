from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class Registration(SQLModel, table=True):
    __table_args__ = (SAUniqueConstraint("tournament_id", "player_id", name="uq_registration_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_id: int
    player_name: str
    team_name: Optional[str] = Field(default=None)  # TEAMS format only
    created_at: datetime = Field(default_factory=datetime.utcnow)


class ProtectedSeed(SQLModel, table=True):
    """Player flagged as cabeça de chave for one tournament."""

    __table_args__ = (SAUniqueConstraint("tournament_id", "player_id", name="uq_protected_seed_player"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_id: int
    active: bool = Field(default=True)
    created_at: datetime = Field(default_factory=datetime.utcnow)
