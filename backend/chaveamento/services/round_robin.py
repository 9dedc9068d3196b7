"""
Round Robin Scheduler: group partition, group assignment and group matches.

Group-size policy:
- prefer groups of 3
- remainder 1 → the last group of 3 becomes a group of 4
- remainder 2 → the last two groups of 3 become groups of 4
- exactly 5 units → one group of 5 (never split 3+2)
"""
from itertools import cycle
from typing import Callable, Iterator, List, Sequence, Tuple, TypeVar

from chaveamento.services.errors import ValidationError

T = TypeVar("T")

MIN_UNITS_FOR_GROUPS = 3


# =============================================================================
# Partition
# =============================================================================

def partition_group_sizes(unit_count: int) -> List[int]:
    """
    Return the group sizes for unit_count units.

    Examples: 5 → [5], 7 → [3, 4], 8 → [4, 4], 9 → [3, 3, 3], 10 → [3, 3, 4], 11 → [3, 4, 4]
    """
    if unit_count < MIN_UNITS_FOR_GROUPS:
        raise ValidationError(
            f"São necessárias ao menos {MIN_UNITS_FOR_GROUPS} duplas/equipes para formar grupos (recebido {unit_count})"
        )
    if unit_count == 5:
        return [5]

    full, remainder = divmod(unit_count, 3)
    if remainder == 0:
        return [3] * full
    if remainder == 1:
        threes = full - 1
        return [3] * threes + [4] if threes > 0 else [4]
    # remainder == 2 (full >= 2 here: 5 is handled above, 2 is rejected)
    return [3] * (full - 2) + [4, 4]


def group_name(index: int) -> str:
    """0 → 'Grupo A', 1 → 'Grupo B', ..."""
    return f"Grupo {group_letter(index)}"


def group_letter(index: int) -> str:
    return chr(ord("A") + index)


# =============================================================================
# Assignment
# =============================================================================

def deal_into_groups(units: Sequence[T], sizes: List[int], is_priority: Callable[[T], bool]) -> List[List[T]]:
    """
    Deal priority units (those holding a protected seed) round-robin across groups first,
    then fill the remaining vacancies in group order.
    """
    if len(units) != sum(sizes):
        raise ValidationError(f"Distribuição inválida: {len(units)} unidades para {sum(sizes)} vagas")

    groups: List[List[T]] = [[] for _ in sizes]
    target = 0
    for unit in (u for u in units if is_priority(u)):
        while len(groups[target]) >= sizes[target]:
            target = (target + 1) % len(sizes)
        groups[target].append(unit)
        target = (target + 1) % len(sizes)

    for unit in (u for u in units if not is_priority(u)):
        idx = next(i for i, g in enumerate(groups) if len(g) < sizes[i])
        groups[idx].append(unit)

    return groups


def serpentine_indices(group_count: int) -> Iterator[int]:
    """A, B, C, C, B, A, A, B, ... as 0-based group indices, forever."""
    forward = list(range(group_count))
    return cycle(forward + forward[::-1])


def deal_serpentine(units: Sequence[T], sizes: List[int]) -> List[List[T]]:
    """Assign units in snake order, skipping groups that are already full."""
    if len(units) != sum(sizes):
        raise ValidationError(f"Distribuição inválida: {len(units)} unidades para {sum(sizes)} vagas")

    groups: List[List[T]] = [[] for _ in sizes]
    order = serpentine_indices(len(sizes))
    for unit in units:
        idx = next(order)
        while len(groups[idx]) >= sizes[idx]:
            idx = next(order)
        groups[idx].append(unit)
    return groups


# =============================================================================
# Matches
# =============================================================================

def total_matches(group_size: int) -> int:
    """C(n, 2): every unit meets every other unit once."""
    return group_size * (group_size - 1) // 2


def round_robin_pairings(group_size: int) -> List[Tuple[int, int, int, int]]:
    """
    Round-robin pairings. Returns list of (round_index, sequence_in_round, idx_a, idx_b)
    with 0-based group positions, covering all C(n, 2) pairs exactly once.

    Circle method: fix position 0, rotate the rest; odd sizes get a resting slot per round.
    """
    n = group_size
    n2 = n + 1 if n % 2 == 1 else n
    half = n2 // 2
    rest_idx = n if n % 2 == 1 else -1

    result: List[Tuple[int, int, int, int]] = []
    positions = list(range(n2))

    for round_num in range(1, n2):
        seq = 0
        for i in range(half):
            a, b = positions[i], positions[n2 - 1 - i]
            if a == rest_idx or b == rest_idx:
                continue
            seq += 1
            result.append((round_num, seq, min(a, b), max(a, b)))
        # Rotate: keep 0, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return result
