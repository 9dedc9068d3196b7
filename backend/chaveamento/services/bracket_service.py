"""
Bracket Service: orchestrates the engines for one tournament (etapa).

Inbound operations:
  form_units_and_groups          INSCRICOES_ENCERRADAS → CHAVES_GERADAS
  generate_elimination_bracket   all groups complete → first elimination phase
  record_match_result            group result (elimination leaves are delegated)
  record_node_result             elimination leaf result + advancement
  cancel_bracket                 drops the elimination phase, back to GRUPOS
  delete_brackets                drops everything, back to INSCRICOES_ENCERRADAS
  close_tournament               awards placement points, FINALIZADA and frozen

Outbound queries: get_standings, get_bracket, list_groups, list_group_matches, get_player_stats.

The service never commits; callers wrap each operation in database.atomic().
"""
import logging
import random
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlmodel import Session

from chaveamento.config import (
    MIN_PLAYERS_FOR_DUOS,
    MIN_TEAMS_FOR_GROUP_STAGE,
    PLACEMENT_CHAMPION,
    PLACEMENT_POINTS,
    TEMPLATE_QUALIFIERS_PER_GROUP,
    TIEBREAK_DRAW_MODE,
    build_rng,
)
from chaveamento.models.bracket_node import BYE_ORIGIN, PHASE_SEQUENCE, BracketNode, EliminationPhase
from chaveamento.models.group import Group
from chaveamento.models.match import GROUP_PHASE, Match, MatchStatus
from chaveamento.models.partner_history import PartnerHistory
from chaveamento.models.player_stats import PlayerStats
from chaveamento.models.registration import Registration
from chaveamento.models.tournament import Tournament, TournamentFormat, TournamentStage
from chaveamento.models.unit import CompetitiveUnit, UnitKind
from chaveamento.repositories.ports import Scope
from chaveamento.repositories.sql import (
    SqlBracketNodeRepository,
    SqlGroupRepository,
    SqlMatchRepository,
    SqlPartnerHistoryRepository,
    SqlPlayerStatsRepository,
    SqlTournamentRepository,
    SqlUnitRepository,
)
from chaveamento.services.advancement_service import AdvancementEngine
from chaveamento.services.bracket_templates import parse_slot_token, plan_nodes, template_for
from chaveamento.services.elimination_seeder import SeedEntry, SeedingResult, seed_bracket
from chaveamento.services.errors import ConflictError, NotFoundError, ValidationError
from chaveamento.services.pair_formation import RosterPlayer, form_pairs
from chaveamento.services.placement import elimination_placements, group_placements
from chaveamento.services.round_robin import (
    deal_into_groups,
    deal_serpentine,
    group_letter,
    group_name,
    partition_group_sizes,
    round_robin_pairings,
    total_matches,
)
from chaveamento.services.score_parser import SIDE_A, parse_score, require_score
from chaveamento.services.standings import DirectResult, StandingRow, TieBreakDraw, rank_group, seed_order
from chaveamento.services.stats_ledger import StatDelta, result_deltas

logger = logging.getLogger(__name__)

GROUP_RESULT_STAGES = (TournamentStage.CHAVES_GERADAS, TournamentStage.GRUPOS)


def standing_row(unit: CompetitiveUnit) -> StandingRow:
    return StandingRow(
        unit_id=unit.id,
        name=unit.name,
        group_id=unit.group_id,
        group_name=unit.group_name,
        matches_played=unit.matches_played,
        wins=unit.wins,
        losses=unit.losses,
        points=unit.points,
        sets_won=unit.sets_won,
        sets_lost=unit.sets_lost,
        games_won=unit.games_won,
        games_lost=unit.games_lost,
        position=unit.group_position,
    )


def _by_position(units: List[CompetitiveUnit]) -> List[CompetitiveUnit]:
    return sorted(units, key=lambda u: (u.group_position is None, u.group_position or 0, u.id))


class BracketService:
    def __init__(
        self,
        session: Session,
        tournament: Tournament,
        rng: Optional[random.Random] = None,
        draw_mode: Optional[str] = None,
    ):
        self.session = session
        self.tournament = tournament
        self.scope = Scope(arena_id=tournament.arena_id, tournament_id=tournament.id)
        self.rng = rng or build_rng()
        self.draw = TieBreakDraw(self.rng, draw_mode or TIEBREAK_DRAW_MODE)

        self.tournaments = SqlTournamentRepository(session)
        self.units = SqlUnitRepository(session)
        self.groups = SqlGroupRepository(session)
        self.matches = SqlMatchRepository(session)
        self.nodes = SqlBracketNodeRepository(session)
        self.partners = SqlPartnerHistoryRepository(session)
        self.player_stats = SqlPlayerStatsRepository(session)
        self.advancement = AdvancementEngine(self.scope, self.nodes, self.matches, self.units, self.player_stats)

    @classmethod
    def for_tournament(cls, session: Session, tournament_id: int, **kwargs: Any) -> "BracketService":
        tournament = session.get(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError(f"Etapa {tournament_id} não encontrada")
        return cls(session, tournament, **kwargs)

    # =========================================================================
    # Units and groups
    # =========================================================================

    def form_units_and_groups(self) -> Dict[str, Any]:
        t = self.tournament
        if t.status != TournamentStage.INSCRICOES_ENCERRADAS:
            raise ValidationError(
                f"As inscrições precisam estar encerradas para gerar as chaves (status atual: {t.status})"
            )
        if t.brackets_generated:
            raise ValidationError("As chaves desta etapa já foram geradas")

        registrations = self.tournaments.registrations(self.scope)
        if t.format == TournamentFormat.TEAMS:
            units = self._form_teams(registrations)
            sizes = partition_group_sizes(len(units))
            # Team brackets only exist for 2 to 8 groups
            template_for(len(sizes))
            dealt = deal_serpentine(units, sizes)
        else:
            units, priority_ids = self._form_duos(registrations)
            sizes = partition_group_sizes(len(units))
            dealt = deal_into_groups(units, sizes, lambda u: u.id in priority_ids)

        groups = self.groups.bulk_create(
            self.scope,
            [
                Group(
                    name=group_name(i),
                    ordem=i + 1,
                    unit_ids=[u.id for u in members],
                    total_matches=total_matches(len(members)),
                )
                for i, members in enumerate(dealt)
            ],
        )

        matches: List[Match] = []
        stats: List[PlayerStats] = []
        for group, members in zip(groups, dealt):
            for unit in members:
                self.units.assign_group(self.scope, unit.id, group.id, group.name)
                for player_id, player_name in zip(unit.member_ids, unit.member_names):
                    stats.append(
                        PlayerStats(
                            player_id=player_id,
                            player_name=player_name,
                            unit_id=unit.id,
                            group_id=group.id,
                            group_name=group.name,
                        )
                    )
            for _round, _seq, idx_a, idx_b in round_robin_pairings(len(members)):
                unit_a, unit_b = members[idx_a], members[idx_b]
                matches.append(
                    Match(
                        phase=GROUP_PHASE,
                        group_id=group.id,
                        unit_a_id=unit_a.id,
                        unit_b_id=unit_b.id,
                        unit_a_name=unit_a.name,
                        unit_b_name=unit_b.name,
                    )
                )
        self.matches.bulk_create(self.scope, matches)
        self.player_stats.bulk_create(self.scope, stats)

        self._claim_tournament(
            status=TournamentStage.CHAVES_GERADAS,
            brackets_generated=True,
            brackets_generated_at=datetime.utcnow(),
        )
        logger.info(
            "Tournament %d: formed %d units into groups %s with %d matches",
            t.id,
            len(units),
            sizes,
            len(matches),
        )
        return {
            "units": len(units),
            "groups": [{"id": g.id, "name": g.name, "size": len(g.unit_ids)} for g in groups],
            "matches": len(matches),
        }

    def _form_duos(self, registrations: List[Registration]) -> Tuple[List[CompetitiveUnit], Set[int]]:
        if len(registrations) < MIN_PLAYERS_FOR_DUOS:
            raise ValidationError(
                f"São necessários ao menos {MIN_PLAYERS_FOR_DUOS} jogadores inscritos (recebido {len(registrations)})"
            )
        protected_ids = self.tournaments.protected_player_ids(self.scope)
        roster = [
            RosterPlayer(player_id=r.player_id, name=r.player_name, protected=r.player_id in protected_ids)
            for r in registrations
        ]
        plan = form_pairs(roster, self.partners.realized_protected_keys(self.scope), self.rng)

        self.partners.append(
            self.scope,
            [
                PartnerHistory(
                    player_a_id=pair.first.player_id,
                    player_b_id=pair.second.player_id,
                    pair_key=pair.pair_key,
                    both_protected=pair.both_protected,
                )
                for pair in plan.pairs
            ],
        )
        units = self.units.bulk_create(
            self.scope,
            [
                CompetitiveUnit(
                    kind=UnitKind.DUPLA.value,
                    name=pair.name,
                    member_ids=[pair.first.player_id, pair.second.player_id],
                    member_names=[pair.first.name, pair.second.name],
                )
                for pair in plan.pairs
            ],
        )
        priority_ids = {
            unit.id for unit, pair in zip(units, plan.pairs) if pair.first.protected or pair.second.protected
        }
        return units, priority_ids

    def _form_teams(self, registrations: List[Registration]) -> List[CompetitiveUnit]:
        rosters: "OrderedDict[str, List[Registration]]" = OrderedDict()
        for r in registrations:
            team = (r.team_name or "").strip()
            if not team:
                raise ValidationError(f"Jogador {r.player_name} não está vinculado a nenhuma equipe")
            rosters.setdefault(team, []).append(r)

        if len(rosters) < MIN_TEAMS_FOR_GROUP_STAGE:
            raise ValidationError(
                f"São necessárias ao menos {MIN_TEAMS_FOR_GROUP_STAGE} equipes para a fase de grupos "
                f"(recebido {len(rosters)})"
            )
        return self.units.bulk_create(
            self.scope,
            [
                CompetitiveUnit(
                    kind=UnitKind.EQUIPE.value,
                    name=team,
                    member_ids=[r.player_id for r in members],
                    member_names=[r.player_name for r in members],
                )
                for team, members in rosters.items()
            ],
        )

    # =========================================================================
    # Group results and standings
    # =========================================================================

    def record_match_result(
        self,
        match_id: int,
        score: Any,
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        match = self.matches.get(self.scope, match_id)
        if match is None:
            raise NotFoundError(f"Partida {match_id} não encontrada")
        if expected_revision is not None and expected_revision != match.revision:
            raise ConflictError(
                f"Partida {match_id} foi alterada por outra operação "
                f"(revisão esperada {expected_revision}, atual {match.revision})"
            )
        if match.node_id is not None:
            return self.record_node_result(match.node_id, score)

        self._require_open()
        parsed = require_score(score)
        if self.nodes.exists(self.scope):
            raise ValidationError(
                "A fase eliminatória já foi gerada; cancele-a antes de alterar resultados da fase de grupos"
            )
        if self.tournament.status not in GROUP_RESULT_STAGES:
            raise ValidationError(f"Resultados de grupo não são aceitos no status {self.tournament.status}")

        if match.status == MatchStatus.FINISHED.value:
            previous = parse_score(match.score_json)
            if previous is not None and previous.winner_side is not None:
                old_a, old_b = result_deltas(previous)
                self._apply_unit_delta(match.unit_a_id, old_a.negated())
                self._apply_unit_delta(match.unit_b_id, old_b.negated())

        side_a, side_b = result_deltas(parsed)
        self._apply_unit_delta(match.unit_a_id, side_a)
        self._apply_unit_delta(match.unit_b_id, side_b)

        match = self.matches.claim(
            self.scope,
            match.id,
            match.revision,
            score_json=parsed.to_json(),
            sets_a=parsed.side_a_sets_won,
            sets_b=parsed.side_b_sets_won,
            games_a=parsed.side_a_games,
            games_b=parsed.side_b_games,
            winner_unit_id=match.unit_a_id if parsed.winner_side == SIDE_A else match.unit_b_id,
            status=MatchStatus.FINISHED.value,
            finished_at=datetime.utcnow(),
        )
        group, ranked = self._refresh_group(match.group_id)

        if self.tournament.status == TournamentStage.CHAVES_GERADAS:
            self._claim_tournament(status=TournamentStage.GRUPOS)
        logger.info(
            "Recorded %s match %d: %s %s %s",
            group.name,
            match.id,
            match.unit_a_name,
            parsed.display(),
            match.unit_b_name,
        )
        return {"match": match, "group": group, "standings": ranked}

    def _apply_unit_delta(self, unit_id: int, delta: StatDelta) -> None:
        unit = self.units.get(self.scope, unit_id)
        if unit is None:
            raise NotFoundError(f"Unidade {unit_id} não encontrada")
        self.units.apply_stats(self.scope, unit_id, delta)
        self.player_stats.apply(self.scope, unit.member_ids or [], delta)

    def _refresh_group(self, group_id: int) -> Tuple[Group, List[StandingRow]]:
        """Re-rank a group and update its finished/complete counters."""
        group = self.groups.get(self.scope, group_id)
        if group is None:
            raise NotFoundError(f"Grupo {group_id} não encontrado")

        units = self.units.list_by_group(self.scope, group_id)
        results = [
            DirectResult(m.unit_a_id, m.unit_b_id, m.winner_unit_id)
            for m in self.matches.list_by_group(self.scope, group_id)
            if m.status == MatchStatus.FINISHED.value and m.winner_unit_id is not None
        ]
        ranked = rank_group([standing_row(u) for u in units], results, self.draw)

        members = {u.id: u.member_ids or [] for u in units}
        for row in ranked:
            self.units.set_position(self.scope, row.unit_id, row.position)
            self.player_stats.set_position(self.scope, members[row.unit_id], row.position)

        finished = self.matches.count_finished_in_group(self.scope, group_id)
        group = self.groups.update_progress(self.scope, group_id, finished)
        return group, ranked

    # =========================================================================
    # Elimination phase
    # =========================================================================

    def generate_elimination_bracket(self, qualifiers_per_group: int) -> Dict[str, Any]:
        t = self.tournament
        if t.status not in GROUP_RESULT_STAGES:
            raise ValidationError(f"Não é possível gerar a fase eliminatória no status {t.status}")
        if self.nodes.exists(self.scope):
            raise ValidationError("A fase eliminatória desta etapa já foi gerada")
        if qualifiers_per_group < 1:
            raise ValidationError("Informe ao menos 1 classificado por grupo")

        groups = self.groups.list_all(self.scope)
        if len(groups) <= 1:
            raise ValidationError(
                "Com apenas um grupo não há fase eliminatória; o grupo define a etapa (encerre a etapa)"
            )
        incomplete = [g.name for g in groups if not g.complete]
        if incomplete:
            raise ValidationError(f"Grupos com partidas pendentes: {', '.join(incomplete)}")

        ranked_units = [_by_position(self.units.list_by_group(self.scope, g.id)) for g in groups]

        if t.format == TournamentFormat.TEAMS:
            if qualifiers_per_group != TEMPLATE_QUALIFIERS_PER_GROUP:
                raise ValidationError(
                    f"O formato de equipes classifica exatamente {TEMPLATE_QUALIFIERS_PER_GROUP} por grupo"
                )
            qualified = self._generate_from_template(groups, ranked_units)
            first_phase = EliminationPhase.OITAVAS.value
            seeding: Optional[SeedingResult] = None
        else:
            seeded = seed_order(
                [[standing_row(u) for u in units] for units in ranked_units],
                qualifiers_per_group,
                self.draw,
            )
            entries = [
                SeedEntry(
                    seed=i + 1,
                    unit_id=row.unit_id,
                    source_group=row.group_name or "",
                    origin=f"{row.position}º {row.group_name}",
                )
                for i, row in enumerate(seeded)
            ]
            seeding = seed_bracket(entries)
            self._persist_seeding(seeding)
            qualified = [e.unit_id for e in entries]
            first_phase = seeding.phase

        self.units.set_qualified(self.scope, qualified, True)
        self.player_stats.set_qualified(self.scope, self._members_of(qualified), True)

        summary = self.advancement.advance_from(first_phase)
        self._refresh_elimination_stage()
        logger.info(
            "Tournament %d: elimination generated from %s with %d qualifiers",
            t.id,
            first_phase,
            len(qualified),
        )
        return {
            "first_phase": first_phase,
            "qualifiers": len(qualified),
            "byes": seeding.bye_count if seeding else None,
            "unavoidable_collisions": seeding.unavoidable_collisions if seeding else [],
            "advancement": summary,
            "nodes": self.nodes.list_all(self.scope),
        }

    def _persist_seeding(self, seeding: SeedingResult) -> List[BracketNode]:
        now = datetime.utcnow()
        nodes: List[BracketNode] = []
        for pairing in seeding.pairings:
            present = pairing.first or pairing.second
            nodes.append(
                BracketNode(
                    phase=seeding.phase,
                    ordem=pairing.ordem,
                    slot_a_unit_id=pairing.first.unit_id if pairing.first else None,
                    slot_a_origin=pairing.first.origin if pairing.first else BYE_ORIGIN,
                    slot_b_unit_id=pairing.second.unit_id if pairing.second else None,
                    slot_b_origin=pairing.second.origin if pairing.second else BYE_ORIGIN,
                    is_bye=pairing.is_bye,
                    status=MatchStatus.FINISHED.value if pairing.is_bye else MatchStatus.SCHEDULED.value,
                    winner_unit_id=present.unit_id if pairing.is_bye else None,
                    score_display=BYE_ORIGIN if pairing.is_bye else None,
                    finished_at=now if pairing.is_bye else None,
                )
            )
        return self.nodes.bulk_create(self.scope, nodes)

    def _generate_from_template(self, groups: List[Group], ranked_units: List[List[CompetitiveUnit]]) -> List[int]:
        """Create the 15 template nodes top-down so every successor exists before its feeders."""
        template = template_for(len(groups))
        lookup: Dict[Tuple[int, str], CompetitiveUnit] = {}
        for group, units in zip(groups, ranked_units):
            letter = group_letter(group.ordem - 1)
            if len(units) < TEMPLATE_QUALIFIERS_PER_GROUP:
                raise ValidationError(f"{group.name} não tem equipes suficientes para classificar")
            for position, unit in enumerate(units[:TEMPLATE_QUALIFIERS_PER_GROUP], start=1):
                lookup[(position, letter)] = unit

        created: Dict[Tuple[str, int], BracketNode] = {}
        for planned in plan_nodes(template):
            successor = created[(planned.next_phase, planned.next_ordem)] if planned.next_phase else None
            slot_a = lookup[parse_slot_token(planned.slot_a)] if planned.slot_a else None
            slot_b = lookup[parse_slot_token(planned.slot_b)] if planned.slot_b else None
            node = self.nodes.create(
                self.scope,
                BracketNode(
                    phase=planned.phase,
                    ordem=planned.ordem,
                    slot_a_unit_id=slot_a.id if slot_a else None,
                    slot_a_origin=planned.slot_a_origin,
                    slot_b_unit_id=slot_b.id if slot_b else None,
                    slot_b_origin=planned.slot_b_origin,
                    next_node_id=successor.id if successor else None,
                    next_slot=planned.next_slot,
                    is_bye=planned.is_bye,
                    status=MatchStatus.SCHEDULED.value,
                ),
            )
            created[(planned.phase, planned.ordem)] = node

        logger.info("Template bracket for %d groups created (%d byes)", template.group_count, template.bye_count)
        return [u.id for u in lookup.values()]

    def record_node_result(
        self,
        node_id: int,
        score: Any,
        expected_revision: Optional[int] = None,
    ) -> Dict[str, Any]:
        self._require_open()
        parsed = require_score(score)
        node, summary = self.advancement.record_result(node_id, parsed, expected_revision)
        self._refresh_elimination_stage()
        return {"node": node, "advancement": summary}

    def cancel_bracket(self) -> Dict[str, Any]:
        self._require_open()
        if not self.nodes.exists(self.scope):
            raise ValidationError("Não há fase eliminatória para cancelar")

        leaves = self.matches.list_elimination(self.scope)
        for leaf in leaves:
            self.advancement.reverse_leaf_stats(leaf)
        deleted_matches = self.matches.delete_elimination(self.scope)
        deleted_nodes = self.nodes.delete_all(self.scope)

        qualified = [u.id for u in self.units.list_all(self.scope) if u.qualified]
        self.units.set_qualified(self.scope, qualified, False)
        self.player_stats.set_qualified(self.scope, self._members_of(qualified), False)

        self._claim_tournament(status=TournamentStage.GRUPOS, champion_unit_id=None)
        logger.info(
            "Tournament %d: elimination cancelled (%d nodes, %d matches reversed)",
            self.tournament.id,
            deleted_nodes,
            deleted_matches,
        )
        return {"nodes_deleted": deleted_nodes, "matches_deleted": deleted_matches, "units_unqualified": len(qualified)}

    def delete_brackets(self) -> Dict[str, Any]:
        self._require_open()
        if not self.tournament.brackets_generated:
            raise ValidationError("As chaves desta etapa ainda não foram geradas")

        counts = {
            "matches_deleted": self.matches.delete_all(self.scope),
            "nodes_deleted": self.nodes.delete_all(self.scope),
            "player_stats_deleted": self.player_stats.delete_all(self.scope),
            "units_deleted": self.units.delete_all(self.scope),
            "groups_deleted": self.groups.delete_all(self.scope),
            "partner_history_deleted": self.partners.delete_for_tournament(self.scope),
        }
        self._claim_tournament(
            status=TournamentStage.INSCRICOES_ENCERRADAS,
            brackets_generated=False,
            brackets_generated_at=None,
            champion_unit_id=None,
        )
        logger.info("Tournament %d: brackets deleted %s", self.tournament.id, counts)
        return counts

    def close_tournament(self) -> Dict[str, Any]:
        """
        Close the etapa: award placement points to every player and freeze results.

        With one group the group positions decide the placements; otherwise the
        elimination phase must be fully decided.
        """
        self._require_open()
        groups = self.groups.list_all(self.scope)
        if not groups:
            raise ValidationError("As chaves desta etapa ainda não foram geradas")

        units = self.units.list_all(self.scope)
        if len(groups) == 1:
            if not groups[0].complete:
                raise ValidationError(f"{groups[0].name} ainda tem partidas pendentes")
            placements = group_placements([u.id for u in _by_position(units)])
        else:
            nodes = self.nodes.list_all(self.scope)
            if not nodes:
                raise ValidationError("A fase eliminatória ainda não foi gerada")
            placements = elimination_placements(nodes, [u.id for u in units])

        champion = next(unit_id for unit_id, p in placements.items() if p == PLACEMENT_CHAMPION)
        for unit in units:
            placement = placements[unit.id]
            self.player_stats.set_placement(self.scope, unit.member_ids or [], placement, PLACEMENT_POINTS[placement])

        self._claim_tournament(
            status=TournamentStage.FINALIZADA,
            champion_unit_id=champion,
            closed_at=datetime.utcnow(),
        )
        logger.info("Tournament %d closed; champion unit %d, %d units placed", self.tournament.id, champion, len(units))
        return {"champion_unit_id": champion, "units_placed": len(units)}

    # =========================================================================
    # Queries
    # =========================================================================

    def get_standings(self, group_id: int) -> Tuple[Group, List[StandingRow]]:
        group = self.groups.get(self.scope, group_id)
        if group is None:
            raise NotFoundError(f"Grupo {group_id} não encontrado")
        units = _by_position(self.units.list_by_group(self.scope, group_id))
        return group, [standing_row(u) for u in units]

    def get_bracket(self, phase: Optional[str] = None) -> List[BracketNode]:
        if phase is None:
            return self.nodes.list_all(self.scope)
        phase = phase.upper()
        if phase not in PHASE_SEQUENCE:
            raise ValidationError(f"Fase inválida: {phase} (use {', '.join(PHASE_SEQUENCE)})")
        return self.nodes.list_by_phase(self.scope, phase)

    def list_groups(self) -> List[Group]:
        return self.groups.list_all(self.scope)

    def list_group_matches(self, group_id: int) -> List[Match]:
        if self.groups.get(self.scope, group_id) is None:
            raise NotFoundError(f"Grupo {group_id} não encontrado")
        return self.matches.list_by_group(self.scope, group_id)

    def get_player_stats(self) -> List[PlayerStats]:
        return self.player_stats.list_all(self.scope)

    # =========================================================================
    # Internals
    # =========================================================================

    def _members_of(self, unit_ids: List[int]) -> List[int]:
        wanted = set(unit_ids)
        return [pid for u in self.units.list_all(self.scope) if u.id in wanted for pid in (u.member_ids or [])]

    def _require_open(self) -> None:
        if self.tournament.closed_at is not None:
            raise ValidationError("Etapa já está encerrada; resultados não podem mais ser alterados")

    def _claim_tournament(self, **values: Any) -> Tournament:
        self.tournament = self.tournaments.claim(self.tournament.id, self.tournament.revision, **values)
        return self.tournament

    def _refresh_elimination_stage(self) -> None:
        """Stage follows the earliest phase with an unfinished node; FINALIZADA once the final is decided."""
        nodes = self.nodes.list_all(self.scope)
        if not nodes:
            return
        # A finished FINAL does not decide the stage while an earlier node was reset
        pending = next((n.phase for n in nodes if n.status != MatchStatus.FINISHED.value), None)
        final = next((n for n in nodes if n.phase == EliminationPhase.FINAL.value), None)
        if pending is not None:
            stage = TournamentStage(pending)
            champion = None
        elif final is not None:
            stage = TournamentStage.FINALIZADA
            champion = final.winner_unit_id
        else:
            return

        if self.tournament.status == stage and self.tournament.champion_unit_id == champion:
            return
        self._claim_tournament(status=stage, champion_unit_id=champion)
        if stage == TournamentStage.FINALIZADA:
            logger.info("Tournament %d finished; champion unit %s", self.tournament.id, champion)
        else:
            logger.info("Tournament %d stage → %s", self.tournament.id, stage.value)
