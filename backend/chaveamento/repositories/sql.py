"""
SQLModel implementations of the repository ports.

- Reads and writes are always filtered by (arena_id, tournament_id).
- Statistics change through relative UPDATEs (col = col + delta), never overwrites.
- claim() is a compare-and-swap on the row's revision column; losing raises ConflictError.
- Nothing here commits; the caller's atomic() block does.
"""
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional, Set, Type, TypeVar

from sqlalchemy import func, update
from sqlmodel import Session, SQLModel, select

from chaveamento.models.bracket_node import PHASE_SEQUENCE, BracketNode
from chaveamento.models.group import Group
from chaveamento.models.match import GROUP_PHASE, Match, MatchStatus
from chaveamento.models.partner_history import PartnerHistory
from chaveamento.models.player_stats import PlayerStats
from chaveamento.models.registration import ProtectedSeed, Registration
from chaveamento.models.tournament import Tournament
from chaveamento.models.unit import CompetitiveUnit
from chaveamento.repositories.ports import Scope
from chaveamento.services.errors import ConflictError, NotFoundError, ValidationError
from chaveamento.services.stats_ledger import StatDelta
from chaveamento.utils.sql import affected_rows, scalar_int

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=SQLModel)


def _in_scope(model: Type[SQLModel], scope: Scope) -> list:
    return [model.arena_id == scope.arena_id, model.tournament_id == scope.tournament_id]


class _ScopedRepository:
    model: Type[SQLModel]

    def __init__(self, session: Session):
        self.session = session

    def _get(self, scope: Scope, row_id: int) -> Optional[Any]:
        row = self.session.get(self.model, row_id)
        if row is None or row.arena_id != scope.arena_id or row.tournament_id != scope.tournament_id:
            return None
        return row

    def _bulk_create(self, scope: Scope, rows: List[ModelT]) -> List[ModelT]:
        for row in rows:
            row.arena_id = scope.arena_id
            row.tournament_id = scope.tournament_id
        self.session.add_all(rows)
        self.session.flush()
        return rows

    def _list(self, scope: Scope, *conditions: Any, order_by: Any = None) -> List[Any]:
        statement = select(self.model).where(*_in_scope(self.model, scope), *conditions)
        statement = statement.order_by(order_by if order_by is not None else self.model.id)
        return list(self.session.exec(statement).all())

    def _delete_where(self, scope: Scope, *conditions: Any) -> int:
        rows = self._list(scope, *conditions)
        for row in rows:
            self.session.delete(row)
        self.session.flush()
        return len(rows)

    def _claim(self, scope: Scope, row_id: int, expected_revision: int, values: dict) -> Any:
        statement = (
            update(self.model)
            .where(
                self.model.id == row_id,
                *_in_scope(self.model, scope),
                self.model.revision == expected_revision,
            )
            .values(**values, revision=expected_revision + 1)
            .execution_options(synchronize_session="evaluate")
        )
        result = self.session.exec(statement)
        if affected_rows(result) == 0:
            row = self._get(scope, row_id)
            if row is None:
                raise NotFoundError(f"{self.model.__name__} {row_id} não encontrado")
            logger.warning(
                "Lost compare-and-swap on %s %d (expected revision %d, found %d)",
                self.model.__name__,
                row_id,
                expected_revision,
                row.revision,
            )
            raise ConflictError(
                f"{self.model.__name__} {row_id} foi alterado por outra operação "
                f"(revisão esperada {expected_revision}, atual {row.revision})"
            )
        row = self.session.get(self.model, row_id)
        self.session.refresh(row)
        return row


class SqlUnitRepository(_ScopedRepository):
    model = CompetitiveUnit

    def bulk_create(self, scope: Scope, units: List[CompetitiveUnit]) -> List[CompetitiveUnit]:
        return self._bulk_create(scope, units)

    def get(self, scope: Scope, unit_id: int) -> Optional[CompetitiveUnit]:
        return self._get(scope, unit_id)

    def list_all(self, scope: Scope) -> List[CompetitiveUnit]:
        return self._list(scope)

    def list_by_group(self, scope: Scope, group_id: int) -> List[CompetitiveUnit]:
        return self._list(scope, CompetitiveUnit.group_id == group_id)

    def assign_group(self, scope: Scope, unit_id: int, group_id: int, group_name: str) -> None:
        unit = self._get(scope, unit_id)
        if unit is None:
            raise NotFoundError(f"Unidade {unit_id} não encontrada")
        if unit.qualified and unit.group_id != group_id:
            raise ValidationError(f"{unit.name} já está classificada e não pode mudar de grupo")
        unit.group_id = group_id
        unit.group_name = group_name
        self.session.add(unit)
        self.session.flush()

    def apply_stats(self, scope: Scope, unit_id: int, delta: StatDelta) -> None:
        if delta.is_zero():
            return
        statement = (
            update(CompetitiveUnit)
            .where(CompetitiveUnit.id == unit_id, *_in_scope(CompetitiveUnit, scope))
            .values(
                matches_played=CompetitiveUnit.matches_played + delta.matches_played,
                wins=CompetitiveUnit.wins + delta.wins,
                losses=CompetitiveUnit.losses + delta.losses,
                points=CompetitiveUnit.points + delta.points,
                sets_won=CompetitiveUnit.sets_won + delta.sets_won,
                sets_lost=CompetitiveUnit.sets_lost + delta.sets_lost,
                games_won=CompetitiveUnit.games_won + delta.games_won,
                games_lost=CompetitiveUnit.games_lost + delta.games_lost,
                set_diff=CompetitiveUnit.set_diff + delta.set_diff,
                game_diff=CompetitiveUnit.game_diff + delta.game_diff,
            )
            .execution_options(synchronize_session="evaluate")
        )
        if affected_rows(self.session.exec(statement)) == 0:
            raise NotFoundError(f"Unidade {unit_id} não encontrada")

    def set_position(self, scope: Scope, unit_id: int, position: Optional[int]) -> None:
        unit = self._get(scope, unit_id)
        if unit is None:
            raise NotFoundError(f"Unidade {unit_id} não encontrada")
        unit.group_position = position
        self.session.add(unit)
        self.session.flush()

    def set_qualified(self, scope: Scope, unit_ids: Iterable[int], qualified: bool) -> None:
        ids = list(unit_ids)
        if not ids:
            return
        statement = (
            update(CompetitiveUnit)
            .where(CompetitiveUnit.id.in_(ids), *_in_scope(CompetitiveUnit, scope))
            .values(qualified=qualified)
            .execution_options(synchronize_session="evaluate")
        )
        self.session.exec(statement)

    def delete_all(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlGroupRepository(_ScopedRepository):
    model = Group

    def bulk_create(self, scope: Scope, groups: List[Group]) -> List[Group]:
        return self._bulk_create(scope, groups)

    def get(self, scope: Scope, group_id: int) -> Optional[Group]:
        return self._get(scope, group_id)

    def list_all(self, scope: Scope) -> List[Group]:
        return self._list(scope, order_by=Group.ordem)

    def update_progress(self, scope: Scope, group_id: int, finished_matches: int) -> Group:
        group = self._get(scope, group_id)
        if group is None:
            raise NotFoundError(f"Grupo {group_id} não encontrado")
        group.finished_matches = finished_matches
        group.complete = group.total_matches > 0 and finished_matches == group.total_matches
        self.session.add(group)
        self.session.flush()
        return group

    def delete_all(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlMatchRepository(_ScopedRepository):
    model = Match

    def bulk_create(self, scope: Scope, matches: List[Match]) -> List[Match]:
        return self._bulk_create(scope, matches)

    def get(self, scope: Scope, match_id: int) -> Optional[Match]:
        return self._get(scope, match_id)

    def list_by_group(self, scope: Scope, group_id: int) -> List[Match]:
        return self._list(scope, Match.group_id == group_id)

    def list_elimination(self, scope: Scope) -> List[Match]:
        return self._list(scope, Match.phase != GROUP_PHASE)

    def count_finished_in_group(self, scope: Scope, group_id: int) -> int:
        statement = (
            select(func.count())
            .select_from(Match)
            .where(
                *_in_scope(Match, scope),
                Match.group_id == group_id,
                Match.status == MatchStatus.FINISHED.value,
            )
        )
        return scalar_int(self.session.exec(statement).one())

    def claim(self, scope: Scope, match_id: int, expected_revision: int, **values: Any) -> Match:
        return self._claim(scope, match_id, expected_revision, values)

    def delete(self, scope: Scope, match_id: int) -> None:
        match = self._get(scope, match_id)
        if match is not None:
            self.session.delete(match)
            self.session.flush()

    def delete_elimination(self, scope: Scope) -> int:
        return self._delete_where(scope, Match.phase != GROUP_PHASE)

    def delete_all(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlBracketNodeRepository(_ScopedRepository):
    model = BracketNode

    def create(self, scope: Scope, node: BracketNode) -> BracketNode:
        return self._bulk_create(scope, [node])[0]

    def bulk_create(self, scope: Scope, nodes: List[BracketNode]) -> List[BracketNode]:
        return self._bulk_create(scope, nodes)

    def get(self, scope: Scope, node_id: int) -> Optional[BracketNode]:
        return self._get(scope, node_id)

    def list_by_phase(self, scope: Scope, phase: str) -> List[BracketNode]:
        return self._list(scope, BracketNode.phase == phase, order_by=BracketNode.ordem)

    def list_all(self, scope: Scope) -> List[BracketNode]:
        nodes = self._list(scope)
        return sorted(nodes, key=lambda n: (PHASE_SEQUENCE.index(n.phase), n.ordem))

    def exists(self, scope: Scope) -> bool:
        statement = select(BracketNode.id).where(*_in_scope(BracketNode, scope)).limit(1)
        return self.session.exec(statement).first() is not None

    def claim(self, scope: Scope, node_id: int, expected_revision: int, **values: Any) -> BracketNode:
        return self._claim(scope, node_id, expected_revision, values)

    def delete_all(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlPartnerHistoryRepository(_ScopedRepository):
    model = PartnerHistory

    def append(self, scope: Scope, entries: List[PartnerHistory]) -> None:
        self._bulk_create(scope, entries)

    def realized_protected_keys(self, scope: Scope) -> Set[str]:
        """Protected-seed pairings already formed anywhere in the arena."""
        statement = select(PartnerHistory.pair_key).where(
            PartnerHistory.arena_id == scope.arena_id,
            PartnerHistory.both_protected == True,  # noqa: E712
        )
        return set(self.session.exec(statement).all())

    def delete_for_tournament(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlPlayerStatsRepository(_ScopedRepository):
    model = PlayerStats

    def bulk_create(self, scope: Scope, rows: List[PlayerStats]) -> List[PlayerStats]:
        return self._bulk_create(scope, rows)

    def list_all(self, scope: Scope) -> List[PlayerStats]:
        return self._list(scope, order_by=PlayerStats.player_id)

    def apply(self, scope: Scope, player_ids: Iterable[int], delta: StatDelta) -> None:
        ids = list(player_ids)
        if not ids or delta.is_zero():
            return
        statement = (
            update(PlayerStats)
            .where(PlayerStats.player_id.in_(ids), *_in_scope(PlayerStats, scope))
            .values(
                matches_played=PlayerStats.matches_played + delta.matches_played,
                wins=PlayerStats.wins + delta.wins,
                losses=PlayerStats.losses + delta.losses,
                sets_won=PlayerStats.sets_won + delta.sets_won,
                sets_lost=PlayerStats.sets_lost + delta.sets_lost,
                games_won=PlayerStats.games_won + delta.games_won,
                games_lost=PlayerStats.games_lost + delta.games_lost,
            )
            .execution_options(synchronize_session="evaluate")
        )
        self.session.exec(statement)

    def set_position(self, scope: Scope, player_ids: Iterable[int], position: Optional[int]) -> None:
        ids = list(player_ids)
        if not ids:
            return
        statement = (
            update(PlayerStats)
            .where(PlayerStats.player_id.in_(ids), *_in_scope(PlayerStats, scope))
            .values(group_position=position)
            .execution_options(synchronize_session="evaluate")
        )
        self.session.exec(statement)

    def set_qualified(self, scope: Scope, player_ids: Iterable[int], qualified: bool) -> None:
        ids = list(player_ids)
        if not ids:
            return
        statement = (
            update(PlayerStats)
            .where(PlayerStats.player_id.in_(ids), *_in_scope(PlayerStats, scope))
            .values(qualified=qualified)
            .execution_options(synchronize_session="evaluate")
        )
        self.session.exec(statement)

    def set_placement(self, scope: Scope, player_ids: Iterable[int], placement: str, points: int) -> None:
        # Absolute, not a delta: closing is a one-shot write
        ids = list(player_ids)
        if not ids:
            return
        statement = (
            update(PlayerStats)
            .where(PlayerStats.player_id.in_(ids), *_in_scope(PlayerStats, scope))
            .values(placement=placement, placement_points=points)
            .execution_options(synchronize_session="evaluate")
        )
        self.session.exec(statement)

    def delete_all(self, scope: Scope) -> int:
        return self._delete_where(scope)


class SqlTournamentRepository:
    """Tournament aggregate plus the registration roster it owns."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, tournament_id: int) -> Optional[Tournament]:
        return self.session.get(Tournament, tournament_id)

    def claim(self, tournament_id: int, expected_revision: int, **values: Any) -> Tournament:
        statement = (
            update(Tournament)
            .where(Tournament.id == tournament_id, Tournament.revision == expected_revision)
            .values(**values, revision=expected_revision + 1, updated_at=datetime.utcnow())
            .execution_options(synchronize_session="evaluate")
        )
        if affected_rows(self.session.exec(statement)) == 0:
            if self.session.get(Tournament, tournament_id) is None:
                raise NotFoundError(f"Etapa {tournament_id} não encontrada")
            raise ConflictError(f"Etapa {tournament_id} foi alterada por outra operação; tente novamente")
        tournament = self.session.get(Tournament, tournament_id)
        self.session.refresh(tournament)
        return tournament

    def registrations(self, scope: Scope) -> List[Registration]:
        statement = (
            select(Registration)
            .where(*_in_scope(Registration, scope))
            .order_by(Registration.id)
        )
        return list(self.session.exec(statement).all())

    def protected_player_ids(self, scope: Scope) -> Set[int]:
        statement = select(ProtectedSeed.player_id).where(
            *_in_scope(ProtectedSeed, scope),
            ProtectedSeed.active == True,  # noqa: E712
        )
        return set(self.session.exec(statement).all())
