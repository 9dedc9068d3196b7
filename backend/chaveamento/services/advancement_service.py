"""
Advancement Engine: elimination node state machine.

  SCHEDULED → FINISHED   on result entry (record_result)
  SCHEDULED → FINISHED   immediately for BYE nodes (present unit wins; BYE vs BYE has no winner)

Whenever every node of a phase is FINISHED, winners are collected in ascending ordem
and either create the next phase (first time: node k feeds node ceil(k/2), slot A when k
is odd) or re-sync the existing next phase through the successor pointers.

Re-sync: a changed slot on a node that already holds a result resets it to SCHEDULED,
reverses and deletes its leaf match and clears its winner. The reset stops there; the
operator re-enters results for later phases. BYE resolutions always cascade.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from chaveamento.models.bracket_node import (
    BYE_ORIGIN,
    SLOT_A,
    SLOT_B,
    BracketNode,
    next_phase,
    winner_origin,
)
from chaveamento.models.match import Match, MatchStatus
from chaveamento.repositories.ports import (
    BracketNodeRepository,
    MatchRepository,
    PlayerStatsRepository,
    Scope,
    UnitRepository,
)
from chaveamento.services.errors import ConflictError, NotFoundError, ValidationError
from chaveamento.services.score_parser import SIDE_A, ParsedScore, parse_score
from chaveamento.services.stats_ledger import result_deltas

logger = logging.getLogger(__name__)

NODE_SCHEDULED = MatchStatus.SCHEDULED.value
NODE_FINISHED = MatchStatus.FINISHED.value

SlotValue = Tuple[Optional[int], Optional[str]]  # (unit_id, origin)


@dataclass
class AdvancementSummary:
    phases_created: List[str] = field(default_factory=list)
    slots_changed: int = 0
    nodes_reset: List[int] = field(default_factory=list)
    byes_resolved: int = 0


def slot_of(node: BracketNode, side: str) -> SlotValue:
    if side == SLOT_A:
        return node.slot_a_unit_id, node.slot_a_origin
    return node.slot_b_unit_id, node.slot_b_origin


def slot_is_bye(slot: SlotValue) -> bool:
    unit_id, origin = slot
    return unit_id is None and origin == BYE_ORIGIN


def slot_is_determined(slot: SlotValue) -> bool:
    return slot[0] is not None or slot_is_bye(slot)


def _slot_fields(side: str, slot: SlotValue) -> Dict[str, Optional[object]]:
    unit_id, origin = slot
    if side == SLOT_A:
        return {"slot_a_unit_id": unit_id, "slot_a_origin": origin}
    return {"slot_b_unit_id": unit_id, "slot_b_origin": origin}


def outgoing_slot(feeder: BracketNode) -> SlotValue:
    """What a finished node hands to its successor slot."""
    if feeder.winner_unit_id is None:
        return None, BYE_ORIGIN
    return feeder.winner_unit_id, winner_origin(feeder.phase, feeder.ordem)


class AdvancementEngine:
    def __init__(
        self,
        scope: Scope,
        nodes: BracketNodeRepository,
        matches: MatchRepository,
        units: UnitRepository,
        player_stats: PlayerStatsRepository,
    ):
        self.scope = scope
        self.nodes = nodes
        self.matches = matches
        self.units = units
        self.player_stats = player_stats

    # ------------------------------------------------------------------
    # Result entry
    # ------------------------------------------------------------------

    def record_result(
        self,
        node_id: int,
        parsed: ParsedScore,
        expected_revision: Optional[int] = None,
    ) -> Tuple[BracketNode, AdvancementSummary]:
        node = self.nodes.get(self.scope, node_id)
        if node is None:
            raise NotFoundError(f"Confronto {node_id} não encontrado")
        if node.is_bye:
            raise ValidationError("Confrontos com BYE são resolvidos automaticamente")
        if node.slot_a_unit_id is None or node.slot_b_unit_id is None:
            raise ValidationError("Confronto ainda não definido: aguarde os vencedores da fase anterior")
        if expected_revision is not None and expected_revision != node.revision:
            raise ConflictError(
                f"Confronto {node_id} foi alterado por outra operação "
                f"(revisão esperada {expected_revision}, atual {node.revision})"
            )

        winner_id = node.slot_a_unit_id if parsed.winner_side == SIDE_A else node.slot_b_unit_id
        now = datetime.utcnow()
        score_values = dict(
            score_json=parsed.to_json(),
            sets_a=parsed.side_a_sets_won,
            sets_b=parsed.side_b_sets_won,
            games_a=parsed.side_a_games,
            games_b=parsed.side_b_games,
            winner_unit_id=winner_id,
            status=NODE_FINISHED,
            finished_at=now,
        )

        existing = self.matches.get(self.scope, node.match_id) if node.match_id else None
        if existing is not None:
            # Edit: subtract the previous result before adding the new one
            self.reverse_leaf_stats(existing)
            match = self.matches.claim(self.scope, existing.id, existing.revision, **score_values)
        else:
            unit_a = self._unit(node.slot_a_unit_id)
            unit_b = self._unit(node.slot_b_unit_id)
            match = Match(
                phase=node.phase,
                node_id=node.id,
                unit_a_id=unit_a.id,
                unit_b_id=unit_b.id,
                unit_a_name=unit_a.name,
                unit_b_name=unit_b.name,
                **score_values,
            )
            match = self.matches.bulk_create(self.scope, [match])[0]

        self._apply_leaf_stats(match, parsed)

        node = self.nodes.claim(
            self.scope,
            node.id,
            node.revision,
            status=NODE_FINISHED,
            winner_unit_id=winner_id,
            match_id=match.id,
            score_display=parsed.display(),
            finished_at=now,
        )
        logger.info(
            "Recorded %s %d result %s (winner unit %d)", node.phase, node.ordem, parsed.display(), winner_id
        )
        summary = self.advance_from(node.phase)
        return node, summary

    def reverse_leaf_stats(self, match: Match) -> None:
        """Subtract a recorded leaf result from its players' statistics."""
        parsed = parse_score(match.score_json)
        if parsed is None or parsed.winner_side is None:
            return
        side_a, side_b = result_deltas(parsed)
        self.player_stats.apply(self.scope, self._members(match.unit_a_id), side_a.negated())
        self.player_stats.apply(self.scope, self._members(match.unit_b_id), side_b.negated())

    def _apply_leaf_stats(self, match: Match, parsed: ParsedScore) -> None:
        side_a, side_b = result_deltas(parsed)
        self.player_stats.apply(self.scope, self._members(match.unit_a_id), side_a)
        self.player_stats.apply(self.scope, self._members(match.unit_b_id), side_b)

    def _unit(self, unit_id: int):
        unit = self.units.get(self.scope, unit_id)
        if unit is None:
            raise NotFoundError(f"Unidade {unit_id} não encontrada")
        return unit

    def _members(self, unit_id: int) -> List[int]:
        return list(self._unit(unit_id).member_ids or [])

    # ------------------------------------------------------------------
    # Phase progression
    # ------------------------------------------------------------------

    def advance_from(self, phase: str) -> AdvancementSummary:
        """Resolve BYEs in phase, then walk forward while each phase is fully finished."""
        summary = AdvancementSummary()
        self.resolve_byes(phase, summary)

        current = phase
        while True:
            upcoming = next_phase(current)
            if upcoming is None:
                break
            feeders = self.nodes.list_by_phase(self.scope, current)
            if not feeders or any(n.status != NODE_FINISHED for n in feeders):
                break
            existing = self.nodes.list_by_phase(self.scope, upcoming)
            if existing:
                self._sync_next_phase(feeders, existing, summary)
            else:
                self._create_next_phase(feeders, upcoming, summary)
            self.resolve_byes(upcoming, summary)
            current = upcoming
        return summary

    def resolve_byes(self, phase: str, summary: Optional[AdvancementSummary] = None) -> int:
        resolved = 0
        for node in self.nodes.list_by_phase(self.scope, phase):
            if node.status == NODE_FINISHED or not node.is_bye:
                continue
            slot_a, slot_b = slot_of(node, SLOT_A), slot_of(node, SLOT_B)
            if not (slot_is_determined(slot_a) and slot_is_determined(slot_b)):
                continue
            winner_id = slot_a[0] if slot_a[0] is not None else slot_b[0]
            self.nodes.claim(
                self.scope,
                node.id,
                node.revision,
                status=NODE_FINISHED,
                winner_unit_id=winner_id,
                score_display=BYE_ORIGIN,
                finished_at=datetime.utcnow(),
            )
            resolved += 1
        if resolved:
            logger.info("Resolved %d BYE node(s) in %s", resolved, phase)
        if summary is not None:
            summary.byes_resolved += resolved
        return resolved

    def _create_next_phase(self, feeders: List[BracketNode], phase: str, summary: AdvancementSummary) -> None:
        if len(feeders) % 2 != 0:
            raise ValidationError(f"Fase com número ímpar de confrontos ({len(feeders)}); chave inconsistente")

        created: List[BracketNode] = []
        for k in range(0, len(feeders), 2):
            slot_a = outgoing_slot(feeders[k])
            slot_b = outgoing_slot(feeders[k + 1])
            created.append(
                BracketNode(
                    phase=phase,
                    ordem=k // 2 + 1,
                    is_bye=slot_is_bye(slot_a) or slot_is_bye(slot_b),
                    status=NODE_SCHEDULED,
                    **_slot_fields(SLOT_A, slot_a),
                    **_slot_fields(SLOT_B, slot_b),
                )
            )
        created = self.nodes.bulk_create(self.scope, created)

        for idx, feeder in enumerate(feeders):
            self.nodes.claim(
                self.scope,
                feeder.id,
                feeder.revision,
                next_node_id=created[idx // 2].id,
                next_slot=SLOT_A if idx % 2 == 0 else SLOT_B,
            )
        summary.phases_created.append(phase)
        logger.info("Created %s with %d node(s)", phase, len(created))

    def _sync_next_phase(
        self,
        feeders: List[BracketNode],
        existing: List[BracketNode],
        summary: AdvancementSummary,
    ) -> None:
        by_id = {n.id: n for n in existing}
        incoming: Dict[int, Dict[str, SlotValue]] = {}
        for feeder in feeders:
            if feeder.next_node_id not in by_id or feeder.next_slot not in (SLOT_A, SLOT_B):
                raise NotFoundError(
                    f"Confronto {feeder.phase} {feeder.ordem} sem sucessor válido na fase seguinte"
                )
            incoming.setdefault(feeder.next_node_id, {})[feeder.next_slot] = outgoing_slot(feeder)

        for target in existing:
            changes: Dict[str, Optional[object]] = {}
            slots = {SLOT_A: slot_of(target, SLOT_A), SLOT_B: slot_of(target, SLOT_B)}
            for side, new_slot in incoming.get(target.id, {}).items():
                if slots[side] != new_slot:
                    changes.update(_slot_fields(side, new_slot))
                    slots[side] = new_slot
            if not changes:
                continue

            summary.slots_changed += 1
            changes["is_bye"] = slot_is_bye(slots[SLOT_A]) or slot_is_bye(slots[SLOT_B])
            if target.status == NODE_FINISHED:
                if target.match_id is not None:
                    leaf = self.matches.get(self.scope, target.match_id)
                    if leaf is not None:
                        self.reverse_leaf_stats(leaf)
                        self.matches.delete(self.scope, leaf.id)
                    logger.warning(
                        "Slot changed on finished %s %d; result discarded, node back to SCHEDULED",
                        target.phase,
                        target.ordem,
                    )
                    summary.nodes_reset.append(target.id)
                changes.update(
                    status=NODE_SCHEDULED,
                    winner_unit_id=None,
                    match_id=None,
                    score_display=None,
                    finished_at=None,
                )
            self.nodes.claim(self.scope, target.id, target.revision, **changes)
