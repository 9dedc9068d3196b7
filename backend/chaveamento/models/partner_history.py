"""
Arena-wide ledger of who has already partnered whom.

One row per formed duo; pair_key is the normalized "min|max" of the two player ids
so that lookups ignore order.
"""
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class PartnerHistory(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    tournament_id: int = Field(foreign_key="tournament.id", index=True)
    player_a_id: int
    player_b_id: int
    pair_key: str = Field(index=True)
    both_protected: bool = Field(default=False)
    created_at: datetime = Field(default_factory=datetime.utcnow)
