"""
Bracket routes: generation triggers, result entry and read-only queries.

Every mutating endpoint runs the service inside one atomic() unit of work.
Engine errors map to HTTP: ValidationError → 422, NotFoundError → 404, ConflictError → 409.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session

from chaveamento.database import atomic, get_session
from chaveamento.services.bracket_service import BracketService
from chaveamento.services.errors import BracketError, ConflictError, NotFoundError, ValidationError

router = APIRouter()

_STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ValidationError, 422),
)


def _http_error(exc: BracketError) -> HTTPException:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


# ============================================================================
# Request/Response Models
# ============================================================================


class EliminationRequest(BaseModel):
    qualifiers_per_group: int = 2


class ResultRequest(BaseModel):
    # {"sets": [{"a": 6, "b": 3}]} or "6-3 4-6 10-7"
    score: Union[Dict[str, Any], str]
    expected_revision: Optional[int] = None


class GroupResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    ordem: int
    unit_ids: List[int]
    total_matches: int
    finished_matches: int
    complete: bool


class StandingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    position: Optional[int] = None
    unit_id: int
    name: str
    matches_played: int
    wins: int
    losses: int
    points: int
    sets_won: int
    sets_lost: int
    set_diff: int
    games_won: int
    games_lost: int
    game_diff: int


class GroupStandingsResponse(BaseModel):
    group: GroupResponse
    standings: List[StandingResponse]


class MatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phase: str
    group_id: Optional[int] = None
    node_id: Optional[int] = None
    unit_a_id: int
    unit_b_id: int
    unit_a_name: str
    unit_b_name: str
    score_json: Optional[Dict[str, Any]] = None
    sets_a: int
    sets_b: int
    games_a: int
    games_b: int
    winner_unit_id: Optional[int] = None
    status: str
    revision: int
    finished_at: Optional[datetime] = None


class BracketNodeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    phase: str
    ordem: int
    slot_a_unit_id: Optional[int] = None
    slot_a_origin: Optional[str] = None
    slot_b_unit_id: Optional[int] = None
    slot_b_origin: Optional[str] = None
    next_node_id: Optional[int] = None
    next_slot: Optional[str] = None
    is_bye: bool
    status: str
    winner_unit_id: Optional[int] = None
    match_id: Optional[int] = None
    score_display: Optional[str] = None
    revision: int


class AdvancementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phases_created: List[str] = []
    slots_changed: int = 0
    nodes_reset: List[int] = []
    byes_resolved: int = 0


class GroupResultResponse(BaseModel):
    match: MatchResponse
    group: GroupResponse
    standings: List[StandingResponse]
    tournament_status: str


class NodeResultResponse(BaseModel):
    node: BracketNodeResponse
    advancement: AdvancementResponse
    tournament_status: str


class EliminationResponse(BaseModel):
    first_phase: str
    qualifiers: int
    byes: Optional[int] = None
    unavoidable_collisions: List[int] = []
    advancement: AdvancementResponse
    nodes: List[BracketNodeResponse]
    tournament_status: str


class PlayerStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    player_id: int
    player_name: str
    unit_id: Optional[int] = None
    matches_played: int
    wins: int
    losses: int
    sets_won: int
    sets_lost: int
    games_won: int
    games_lost: int
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    group_position: Optional[int] = None
    qualified: bool
    placement: Optional[str] = None
    placement_points: int = 0


# ============================================================================
# Generation Triggers
# ============================================================================


@router.post("/tournaments/{tournament_id}/brackets/groups", status_code=201)
def form_units_and_groups(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Form duos/teams, deal them into groups and create all group matches."""
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.form_units_and_groups()
            result["tournament_status"] = service.tournament.status
    except BracketError as exc:
        raise _http_error(exc) from exc
    return result


@router.delete("/tournaments/{tournament_id}/brackets")
def delete_brackets(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Remove units, groups, matches and the elimination phase; back to INSCRICOES_ENCERRADAS."""
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.delete_brackets()
            result["tournament_status"] = service.tournament.status
    except BracketError as exc:
        raise _http_error(exc) from exc
    return result


@router.post(
    "/tournaments/{tournament_id}/brackets/elimination",
    response_model=EliminationResponse,
    status_code=201,
)
def generate_elimination_bracket(
    tournament_id: int,
    payload: EliminationRequest,
    session: Session = Depends(get_session),
) -> EliminationResponse:
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.generate_elimination_bracket(payload.qualifiers_per_group)
            response = EliminationResponse(
                first_phase=result["first_phase"],
                qualifiers=result["qualifiers"],
                byes=result["byes"],
                unavoidable_collisions=result["unavoidable_collisions"],
                advancement=AdvancementResponse.model_validate(result["advancement"]),
                nodes=[BracketNodeResponse.model_validate(n) for n in result["nodes"]],
                tournament_status=service.tournament.status,
            )
    except BracketError as exc:
        raise _http_error(exc) from exc
    return response


@router.delete("/tournaments/{tournament_id}/brackets/elimination")
def cancel_bracket(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Drop the elimination phase, reversing its player statistics; groups are kept."""
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.cancel_bracket()
            result["tournament_status"] = service.tournament.status
    except BracketError as exc:
        raise _http_error(exc) from exc
    return result


@router.post("/tournaments/{tournament_id}/close")
def close_tournament(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Encerrar etapa: award placement points per player and freeze all results."""
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.close_tournament()
            result["tournament_status"] = service.tournament.status
            result["closed_at"] = service.tournament.closed_at
    except BracketError as exc:
        raise _http_error(exc) from exc
    return result


# ============================================================================
# Result Entry
# ============================================================================


@router.put("/tournaments/{tournament_id}/matches/{match_id}/result")
def record_match_result(
    tournament_id: int,
    match_id: int,
    payload: ResultRequest,
    session: Session = Depends(get_session),
) -> Union[GroupResultResponse, NodeResultResponse]:
    """Record or edit a match result. Elimination leaf matches are routed to their node."""
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.record_match_result(match_id, payload.score, payload.expected_revision)
            response = _result_response(service, result)
    except BracketError as exc:
        raise _http_error(exc) from exc
    return response


@router.put("/tournaments/{tournament_id}/brackets/nodes/{node_id}/result", response_model=NodeResultResponse)
def record_node_result(
    tournament_id: int,
    node_id: int,
    payload: ResultRequest,
    session: Session = Depends(get_session),
) -> NodeResultResponse:
    try:
        with atomic(session):
            service = BracketService.for_tournament(session, tournament_id)
            result = service.record_node_result(node_id, payload.score, payload.expected_revision)
            response = _result_response(service, result)
    except BracketError as exc:
        raise _http_error(exc) from exc
    return response


def _result_response(service: BracketService, result: Dict[str, Any]) -> Union[GroupResultResponse, NodeResultResponse]:
    if "node" in result:
        return NodeResultResponse(
            node=BracketNodeResponse.model_validate(result["node"]),
            advancement=AdvancementResponse.model_validate(result["advancement"]),
            tournament_status=service.tournament.status,
        )
    return GroupResultResponse(
        match=MatchResponse.model_validate(result["match"]),
        group=GroupResponse.model_validate(result["group"]),
        standings=[StandingResponse.model_validate(r) for r in result["standings"]],
        tournament_status=service.tournament.status,
    )


# ============================================================================
# Queries
# ============================================================================


@router.get("/tournaments/{tournament_id}/groups", response_model=List[GroupResponse])
def list_groups(tournament_id: int, session: Session = Depends(get_session)):
    try:
        return BracketService.for_tournament(session, tournament_id).list_groups()
    except BracketError as exc:
        raise _http_error(exc) from exc


@router.get("/tournaments/{tournament_id}/groups/{group_id}/standings", response_model=GroupStandingsResponse)
def get_standings(tournament_id: int, group_id: int, session: Session = Depends(get_session)):
    try:
        group, rows = BracketService.for_tournament(session, tournament_id).get_standings(group_id)
    except BracketError as exc:
        raise _http_error(exc) from exc
    return GroupStandingsResponse(
        group=GroupResponse.model_validate(group),
        standings=[StandingResponse.model_validate(r) for r in rows],
    )


@router.get("/tournaments/{tournament_id}/groups/{group_id}/matches", response_model=List[MatchResponse])
def list_group_matches(tournament_id: int, group_id: int, session: Session = Depends(get_session)):
    try:
        return BracketService.for_tournament(session, tournament_id).list_group_matches(group_id)
    except BracketError as exc:
        raise _http_error(exc) from exc


@router.get("/tournaments/{tournament_id}/brackets", response_model=List[BracketNodeResponse])
def get_bracket(
    tournament_id: int,
    phase: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Elimination nodes ordered by phase then ordem; optionally a single phase."""
    try:
        return BracketService.for_tournament(session, tournament_id).get_bracket(phase)
    except BracketError as exc:
        raise _http_error(exc) from exc


@router.get("/tournaments/{tournament_id}/player-stats", response_model=List[PlayerStatsResponse])
def get_player_stats(tournament_id: int, session: Session = Depends(get_session)):
    try:
        return BracketService.for_tournament(session, tournament_id).get_player_stats()
    except BracketError as exc:
        raise _http_error(exc) from exc
