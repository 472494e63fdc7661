"""Partition engine: split eligible members into small groups.

Groups are formed greedily against a pairwise repeat-cost matrix, then
improved by swapping members between groups:

1. Build the cost matrix from the pairing history.
2. Shuffle the (sorted) members with a seeded random source.
3. Fill one group at a time, always adding the remaining member with the
   lowest cost against the group's current occupants.
4. Merge a leftover group of one into the group where it adds the least.
5. Swap members between groups while that lowers the total cost.
"""

import logging
import random
from itertools import combinations
from typing import Callable, Iterable, Optional

from rotation import Group
from rotation.errors import InvalidGroupSize, SingletonGroupViolation

log = logging.getLogger(__name__)

VALID_GROUP_SIZES = (2, 3)

# Upper bound for full swap passes over all group pairs
MAX_REFINE_PASSES = 50

_EPSILON = 1e-9

CostFn = Callable[[str, str], float]
CostMatrix = dict[str, dict[str, float]]


def _no_history(a: str, b: str) -> float:
    return 0.0


def build_cost_matrix(members: list[str], history_weight: CostFn) -> CostMatrix:
    """Build a symmetric pairwise cost matrix for ``members``."""
    matrix: CostMatrix = {m: {} for m in members}
    for a, b in combinations(members, 2):
        cost = float(history_weight(a, b))
        matrix[a][b] = cost
        matrix[b][a] = cost
    return matrix


def _added_cost(member: str, group: Iterable[str], matrix: CostMatrix) -> float:
    """Cost of adding ``member`` to the members already in ``group``."""
    return sum(matrix[member][other] for other in group if other != member)


def group_cost(group: Iterable[str], matrix: CostMatrix) -> float:
    """Total internal cost of a group."""
    return sum(matrix[a][b] for a, b in combinations(group, 2))


def partition_cost(groups: Iterable[Group], history_weight: CostFn) -> float:
    """Total repeat cost of a partition under ``history_weight``."""
    return sum(
        history_weight(a, b)
        for group in groups
        for a, b in combinations(group, 2)
    )


def _greedy_groups(order: list[str], group_size: int, matrix: CostMatrix) -> list[list[str]]:
    remaining = list(order)
    groups: list[list[str]] = []

    while remaining:
        group = [remaining.pop(0)]
        while len(group) < group_size and remaining:
            # min() keeps the first of equal candidates, i.e. shuffle order
            best = min(remaining, key=lambda m: _added_cost(m, group, matrix))
            remaining.remove(best)
            group.append(best)
        groups.append(group)

    return groups


def _merge_singleton(groups: list[list[str]], matrix: CostMatrix) -> None:
    """Fold a trailing group of one into the cheapest other group.

    Cheapest means lowest internal cost after the merge, counting the
    leftover's own history with the group.
    """
    if len(groups) < 2 or len(groups[-1]) != 1:
        return
    leftover = groups.pop()[0]
    target = min(
        groups,
        key=lambda g: group_cost(g, matrix) + _added_cost(leftover, g, matrix),
    )
    target.append(leftover)
    log.debug("Rest-Mitglied %s in Gruppe der Groesse %d verschoben", leftover, len(target))


def _refine(groups: list[list[str]], matrix: CostMatrix) -> int:
    """Swap members between groups while the total cost strictly drops.

    Returns:
        Number of passes performed.
    """
    passes = 0
    improved = True
    while improved and passes < MAX_REFINE_PASSES:
        improved = False
        passes += 1
        for i, j in combinations(range(len(groups)), 2):
            left, right = groups[i], groups[j]
            for x in range(len(left)):
                for y in range(len(right)):
                    a, b = left[x], right[y]
                    before = _added_cost(a, left, matrix) + _added_cost(b, right, matrix)
                    after = (
                        _added_cost(b, [m for m in left if m != a], matrix)
                        + _added_cost(a, [m for m in right if m != b], matrix)
                    )
                    if after < before - _EPSILON:
                        left[x], right[y] = b, a
                        improved = True
    return passes


def check_no_singletons(groups: Iterable[Iterable[str]]) -> None:
    """Raise SingletonGroupViolation if any group has fewer than 2 members."""
    for group in groups:
        if len(tuple(group)) < 2:
            raise SingletonGroupViolation(group)


def partition(
    members: Iterable[str],
    group_size: int,
    history_weight: Optional[CostFn] = None,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
) -> list[Group] | InvalidGroupSize:
    """Partition members into groups that avoid recent repeat pairings.

    Every group has ``group_size`` members, except at most one: it holds
    ``group_size - 1`` members when the remainder allows it, or
    ``group_size + 1`` when the remainder would otherwise be a single member.

    Args:
        members: Distinct ids of eligible members.
        group_size: Target group size, 2 or 3.
        history_weight: Repeat cost for a pair of members. Defaults to no
            history.
        seed: Seed for the shuffle. Identical inputs and seed give
            identical partitions.
        rng: Explicit random source; takes precedence over ``seed``.

    Returns:
        List of groups (empty if fewer than 2 members), or InvalidGroupSize.
    """
    if group_size not in VALID_GROUP_SIZES:
        log.warning("Gruppengroesse %r abgelehnt", group_size)
        return InvalidGroupSize(group_size=group_size, allowed=VALID_GROUP_SIZES)

    # Sorting first makes the result independent of the roster order
    pool = sorted(set(members))
    if len(pool) < 2:
        log.info("Zu wenige Mitglieder fuer eine Runde: %d", len(pool))
        return []

    history_weight = history_weight or _no_history
    matrix = build_cost_matrix(pool, history_weight)

    rng = rng or random.Random(seed)
    order = list(pool)
    rng.shuffle(order)

    groups = _greedy_groups(order, group_size, matrix)
    _merge_singleton(groups, matrix)
    passes = _refine(groups, matrix)
    check_no_singletons(groups)

    result = [tuple(g) for g in groups]
    log.info(
        "Partition abgeschlossen: %d Mitglieder in %d Gruppen (Kosten %.4f, %d Durchlaeufe)",
        len(pool), len(result), sum(group_cost(g, matrix) for g in groups), passes,
    )
    return result
