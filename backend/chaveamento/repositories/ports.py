"""
Repository ports consumed by the bracket engine.

Every call takes a Scope: tenant (arena) and tournament are mandatory filter keys.
Implementations only flush; the caller owns the transaction (see database.atomic).
"""
from dataclasses import dataclass
from typing import Any, Iterable, List, Optional, Protocol, Set

from chaveamento.models.bracket_node import BracketNode
from chaveamento.models.group import Group
from chaveamento.models.match import Match
from chaveamento.models.partner_history import PartnerHistory
from chaveamento.models.player_stats import PlayerStats
from chaveamento.models.unit import CompetitiveUnit
from chaveamento.services.stats_ledger import StatDelta


@dataclass(frozen=True)
class Scope:
    arena_id: int
    tournament_id: int


class UnitRepository(Protocol):
    def bulk_create(self, scope: Scope, units: List[CompetitiveUnit]) -> List[CompetitiveUnit]: ...

    def get(self, scope: Scope, unit_id: int) -> Optional[CompetitiveUnit]: ...

    def list_all(self, scope: Scope) -> List[CompetitiveUnit]: ...

    def list_by_group(self, scope: Scope, group_id: int) -> List[CompetitiveUnit]: ...

    def assign_group(self, scope: Scope, unit_id: int, group_id: int, group_name: str) -> None: ...

    def apply_stats(self, scope: Scope, unit_id: int, delta: StatDelta) -> None: ...

    def set_position(self, scope: Scope, unit_id: int, position: Optional[int]) -> None: ...

    def set_qualified(self, scope: Scope, unit_ids: Iterable[int], qualified: bool) -> None: ...

    def delete_all(self, scope: Scope) -> int: ...


class GroupRepository(Protocol):
    def bulk_create(self, scope: Scope, groups: List[Group]) -> List[Group]: ...

    def get(self, scope: Scope, group_id: int) -> Optional[Group]: ...

    def list_all(self, scope: Scope) -> List[Group]: ...

    def update_progress(self, scope: Scope, group_id: int, finished_matches: int) -> Group: ...

    def delete_all(self, scope: Scope) -> int: ...


class MatchRepository(Protocol):
    def bulk_create(self, scope: Scope, matches: List[Match]) -> List[Match]: ...

    def get(self, scope: Scope, match_id: int) -> Optional[Match]: ...

    def list_by_group(self, scope: Scope, group_id: int) -> List[Match]: ...

    def list_elimination(self, scope: Scope) -> List[Match]: ...

    def count_finished_in_group(self, scope: Scope, group_id: int) -> int: ...

    def claim(self, scope: Scope, match_id: int, expected_revision: int, **values: Any) -> Match: ...

    def delete(self, scope: Scope, match_id: int) -> None: ...

    def delete_elimination(self, scope: Scope) -> int: ...

    def delete_all(self, scope: Scope) -> int: ...


class BracketNodeRepository(Protocol):
    def create(self, scope: Scope, node: BracketNode) -> BracketNode: ...

    def bulk_create(self, scope: Scope, nodes: List[BracketNode]) -> List[BracketNode]: ...

    def get(self, scope: Scope, node_id: int) -> Optional[BracketNode]: ...

    def list_by_phase(self, scope: Scope, phase: str) -> List[BracketNode]: ...

    def list_all(self, scope: Scope) -> List[BracketNode]: ...

    def exists(self, scope: Scope) -> bool: ...

    def claim(self, scope: Scope, node_id: int, expected_revision: int, **values: Any) -> BracketNode: ...

    def delete_all(self, scope: Scope) -> int: ...


class PartnerHistoryRepository(Protocol):
    def append(self, scope: Scope, entries: List[PartnerHistory]) -> None: ...

    def realized_protected_keys(self, scope: Scope) -> Set[str]: ...

    def delete_for_tournament(self, scope: Scope) -> int: ...


class PlayerStatsRepository(Protocol):
    def bulk_create(self, scope: Scope, rows: List[PlayerStats]) -> List[PlayerStats]: ...

    def list_all(self, scope: Scope) -> List[PlayerStats]: ...

    def apply(self, scope: Scope, player_ids: Iterable[int], delta: StatDelta) -> None: ...

    def set_position(self, scope: Scope, player_ids: Iterable[int], position: Optional[int]) -> None: ...

    def set_qualified(self, scope: Scope, player_ids: Iterable[int], qualified: bool) -> None: ...

    def set_placement(self, scope: Scope, player_ids: Iterable[int], placement: str, points: int) -> None: ...

    def delete_all(self, scope: Scope) -> int: ...
