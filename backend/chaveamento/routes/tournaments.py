"""
Tournament (etapa) lifecycle and registration routes.

RASCUNHO → INSCRICOES_ABERTAS → INSCRICOES_ENCERRADAS; bracket generation and
everything after it lives in routes/brackets.py.
"""
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, field_validator
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from chaveamento.database import get_session
from chaveamento.models.registration import ProtectedSeed, Registration
from chaveamento.models.tournament import Tournament, TournamentFormat, TournamentStage

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class TournamentCreate(BaseModel):
    arena_id: int
    name: str
    format: TournamentFormat = TournamentFormat.DUPLA_FIXA
    max_players: Optional[int] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()

    @field_validator("max_players")
    @classmethod
    def validate_max_players(cls, v):
        if v is not None and v < 2:
            raise ValueError("max_players must be >= 2")
        return v


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    arena_id: int
    name: str
    format: str
    status: str
    max_players: Optional[int] = None
    brackets_generated: bool
    brackets_generated_at: Optional[datetime] = None
    champion_unit_id: Optional[int] = None
    closed_at: Optional[datetime] = None
    revision: int
    created_at: datetime
    updated_at: datetime


class RegistrationCreate(BaseModel):
    player_id: int
    player_name: str
    team_name: Optional[str] = None

    @field_validator("player_name")
    @classmethod
    def validate_player_name(cls, v):
        if not v or not v.strip():
            raise ValueError("player_name is required")
        return v.strip()


class RegistrationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    player_id: int
    player_name: str
    team_name: Optional[str] = None
    created_at: datetime


class ProtectedSeedsUpdate(BaseModel):
    player_ids: List[int]


class ProtectedSeedsResponse(BaseModel):
    tournament_id: int
    player_ids: List[int]


# ============================================================================
# Helpers
# ============================================================================


def _get_tournament(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def _transition(session: Session, tournament: Tournament, current: TournamentStage, new: TournamentStage) -> Tournament:
    if tournament.status != current:
        raise HTTPException(
            status_code=422,
            detail=f"Cannot move from {tournament.status} to {new.value}; expected status {current.value}",
        )
    tournament.status = new
    tournament.revision += 1
    tournament.updated_at = datetime.utcnow()
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


# ============================================================================
# Tournament Endpoints
# ============================================================================


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(payload: TournamentCreate, session: Session = Depends(get_session)):
    """Create a tournament in RASCUNHO"""
    tournament = Tournament(**payload.model_dump())
    session.add(tournament)
    session.commit()
    session.refresh(tournament)
    return tournament


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(arena_id: Optional[int] = None, session: Session = Depends(get_session)):
    """List tournaments, optionally for one arena"""
    query = select(Tournament)
    if arena_id is not None:
        query = query.where(Tournament.arena_id == arena_id)
    return session.exec(query.order_by(Tournament.id)).all()


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return _get_tournament(session, tournament_id)


@router.post("/tournaments/{tournament_id}/registrations/open", response_model=TournamentResponse)
def open_registrations(tournament_id: int, session: Session = Depends(get_session)):
    tournament = _get_tournament(session, tournament_id)
    return _transition(session, tournament, TournamentStage.RASCUNHO, TournamentStage.INSCRICOES_ABERTAS)


@router.post("/tournaments/{tournament_id}/registrations/close", response_model=TournamentResponse)
def close_registrations(tournament_id: int, session: Session = Depends(get_session)):
    tournament = _get_tournament(session, tournament_id)
    return _transition(
        session, tournament, TournamentStage.INSCRICOES_ABERTAS, TournamentStage.INSCRICOES_ENCERRADAS
    )


# ============================================================================
# Registration Endpoints
# ============================================================================


@router.get("/tournaments/{tournament_id}/registrations", response_model=List[RegistrationResponse])
def list_registrations(tournament_id: int, session: Session = Depends(get_session)):
    _get_tournament(session, tournament_id)
    return session.exec(
        select(Registration).where(Registration.tournament_id == tournament_id).order_by(Registration.id)
    ).all()


@router.post("/tournaments/{tournament_id}/registrations", response_model=RegistrationResponse, status_code=201)
def register_player(tournament_id: int, payload: RegistrationCreate, session: Session = Depends(get_session)):
    """
    Register a player while registrations are open.

    Constraints:
    - (tournament_id, player_id) must be unique
    - max_players, when set, caps the roster
    - TEAMS format requires team_name
    """
    tournament = _get_tournament(session, tournament_id)
    if tournament.status != TournamentStage.INSCRICOES_ABERTAS:
        raise HTTPException(status_code=422, detail="Registrations are not open")
    if tournament.format == TournamentFormat.TEAMS and not (payload.team_name or "").strip():
        raise HTTPException(status_code=422, detail="team_name is required for the TEAMS format")

    if tournament.max_players is not None:
        count = len(
            session.exec(select(Registration.id).where(Registration.tournament_id == tournament_id)).all()
        )
        if count >= tournament.max_players:
            raise HTTPException(status_code=422, detail=f"Tournament is full ({tournament.max_players} players)")

    registration = Registration(
        arena_id=tournament.arena_id,
        tournament_id=tournament_id,
        player_id=payload.player_id,
        player_name=payload.player_name,
        team_name=payload.team_name.strip() if payload.team_name else None,
    )
    try:
        session.add(registration)
        session.commit()
    except IntegrityError:
        session.rollback()
        raise HTTPException(status_code=409, detail=f"Player {payload.player_id} is already registered")
    session.refresh(registration)
    return registration


@router.get("/tournaments/{tournament_id}/protected-seeds", response_model=ProtectedSeedsResponse)
def get_protected_seeds(tournament_id: int, session: Session = Depends(get_session)):
    _get_tournament(session, tournament_id)
    seeds = session.exec(
        select(ProtectedSeed).where(ProtectedSeed.tournament_id == tournament_id, ProtectedSeed.active == True)  # noqa: E712
    ).all()
    return ProtectedSeedsResponse(tournament_id=tournament_id, player_ids=sorted(s.player_id for s in seeds))


@router.put("/tournaments/{tournament_id}/protected-seeds", response_model=ProtectedSeedsResponse)
def set_protected_seeds(tournament_id: int, payload: ProtectedSeedsUpdate, session: Session = Depends(get_session)):
    """Replace the set of protected seeds (cabeças de chave); players must be registered."""
    tournament = _get_tournament(session, tournament_id)
    if tournament.brackets_generated:
        raise HTTPException(status_code=422, detail="Protected seeds are locked once brackets are generated")

    registered = set(
        session.exec(select(Registration.player_id).where(Registration.tournament_id == tournament_id)).all()
    )
    unknown = sorted(set(payload.player_ids) - registered)
    if unknown:
        raise HTTPException(status_code=422, detail=f"Players not registered: {unknown}")

    existing = session.exec(select(ProtectedSeed).where(ProtectedSeed.tournament_id == tournament_id)).all()
    for seed in existing:
        session.delete(seed)
    session.flush()
    for player_id in sorted(set(payload.player_ids)):
        session.add(ProtectedSeed(arena_id=tournament.arena_id, tournament_id=tournament_id, player_id=player_id))
    session.commit()
    return ProtectedSeedsResponse(tournament_id=tournament_id, player_ids=sorted(set(payload.player_ids)))
