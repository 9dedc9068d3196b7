"""
Duo formation for the fixed-duo (dupla fixa) format.

Rules:
- Protected seeds (cabeças de chave) are never paired with each other while the
  protected combination space is not exhausted. Each protected seed gets a random
  non-protected partner first; the remaining non-protected players pair among themselves.
- The combination space is every C(k, 2) pair of the k active protected seeds. It is
  exhausted once every such pair appears in the arena ledger as a protected pairing.
  Exhausted with k >= 2 → unconstrained random pairing.
- Odd rosters and rosters with more protected than non-protected players are rejected.
"""
import logging
import random
from dataclasses import dataclass, field
from itertools import combinations
from typing import Iterable, List, Set, Tuple

from chaveamento.services.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterPlayer:
    player_id: int
    name: str
    protected: bool = False


@dataclass
class FormedPair:
    first: RosterPlayer
    second: RosterPlayer

    @property
    def both_protected(self) -> bool:
        return self.first.protected and self.second.protected

    @property
    def pair_key(self) -> str:
        return pair_key(self.first.player_id, self.second.player_id)

    @property
    def name(self) -> str:
        return f"{self.first.name} / {self.second.name}"


@dataclass
class PairingPlan:
    pairs: List[FormedPair] = field(default_factory=list)
    free_pairing: bool = False
    combinations_total: int = 0
    combinations_remaining: int = 0


def pair_key(player_a_id: int, player_b_id: int) -> str:
    """Order-independent ledger key for a partnership."""
    low, high = sorted((player_a_id, player_b_id))
    return f"{low}|{high}"


def combination_space(protected_ids: Iterable[int], realized_keys: Set[str]) -> Tuple[int, int]:
    """Return (total, remaining) protected-seed combinations for this roster."""
    keys = [pair_key(a, b) for a, b in combinations(sorted(set(protected_ids)), 2)]
    remaining = sum(1 for k in keys if k not in realized_keys)
    return len(keys), remaining


def form_pairs(
    players: List[RosterPlayer],
    realized_protected_keys: Set[str],
    rng: random.Random,
) -> PairingPlan:
    """Pair the roster into duos. Does not touch the ledger; the caller appends plan.pairs."""
    if len(players) % 2 != 0:
        raise ValidationError(
            f"Número ímpar de jogadores ({len(players)}); é necessário um número par para formar duplas"
        )

    protected = [p for p in players if p.protected]
    others = [p for p in players if not p.protected]

    total, remaining = combination_space((p.player_id for p in protected), realized_protected_keys)
    plan = PairingPlan(combinations_total=total, combinations_remaining=remaining)

    if remaining == 0 and len(protected) >= 2:
        plan.free_pairing = True
        pool = list(players)
        rng.shuffle(pool)
        plan.pairs = [FormedPair(pool[i], pool[i + 1]) for i in range(0, len(pool), 2)]
        logger.info(
            "Protected combinations exhausted (%d/%d realized); pairing %d players freely",
            total,
            total,
            len(players),
        )
        return plan

    if len(protected) > len(others):
        raise ValidationError(
            f"Cabeças de chave ({len(protected)}) excedem jogadores sem proteção ({len(others)})"
        )

    protected = list(protected)
    others = list(others)
    rng.shuffle(protected)
    rng.shuffle(others)

    for seed in protected:
        plan.pairs.append(FormedPair(seed, others.pop()))
    for i in range(0, len(others), 2):
        plan.pairs.append(FormedPair(others[i], others[i + 1]))

    logger.info(
        "Formed %d duos (%d protected seeds, %d/%d combinations remaining)",
        len(plan.pairs),
        len(protected),
        remaining,
        total,
    )
    return plan
