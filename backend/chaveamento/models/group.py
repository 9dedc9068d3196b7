from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class Group(SQLModel, table=True):
    __tablename__ = "tournament_group"

    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    name: str  # "Grupo A", "Grupo B", ...
    ordem: int
    unit_ids: List[int] = Field(default_factory=list, sa_column=Column(JSON))
    total_matches: int = Field(default=0)
    finished_matches: int = Field(default=0)
    # complete <=> finished_matches == total_matches == C(n, 2)
    complete: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
