from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import String
from sqlmodel import Column, Field, SQLModel


class TournamentFormat(str, Enum):
    DUPLA_FIXA = "DUPLA_FIXA"
    TEAMS = "TEAMS"


class TournamentStage(str, Enum):
    RASCUNHO = "RASCUNHO"
    INSCRICOES_ABERTAS = "INSCRICOES_ABERTAS"
    INSCRICOES_ENCERRADAS = "INSCRICOES_ENCERRADAS"
    CHAVES_GERADAS = "CHAVES_GERADAS"
    GRUPOS = "GRUPOS"
    OITAVAS = "OITAVAS"
    QUARTAS = "QUARTAS"
    SEMIFINAL = "SEMIFINAL"
    FINAL = "FINAL"
    FINALIZADA = "FINALIZADA"


class Tournament(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    arena_id: int = Field(index=True)
    name: str
    format: TournamentFormat = Field(sa_column=Column(String, nullable=False))
    status: TournamentStage = Field(
        default=TournamentStage.RASCUNHO, sa_column=Column(String, nullable=False)
    )
    max_players: Optional[int] = Field(default=None)

    # Set when units/groups exist (CHAVES_GERADAS onwards)
    brackets_generated: bool = Field(default=False)
    brackets_generated_at: Optional[datetime] = Field(default=None)
    champion_unit_id: Optional[int] = Field(default=None)

    # Set by close_tournament; results are frozen afterwards
    closed_at: Optional[datetime] = Field(default=None)

    # Compare-and-swap guard for generation operations
    revision: int = Field(default=0)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
