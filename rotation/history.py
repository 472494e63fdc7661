"""Recency-weighted pairing history used as the partition cost."""

import logging
from collections import defaultdict
from itertools import combinations
from typing import Iterable

from rotation import Group, MatchRound

log = logging.getLogger(__name__)

# How many past rounds are considered by default
DEFAULT_LOOKBACK = 10

# Weight multiplier per round further back (most recent round weighs 1.0)
DECAY = 0.5


def _pair_key(a: str, b: str) -> frozenset:
    return frozenset((a, b))


def recency_weight(rounds_ago: int) -> float:
    """Weight of one shared match that happened ``rounds_ago`` rounds back.

    Args:
        rounds_ago: 1 for the most recent round, 2 for the one before, ...

    Returns:
        Weight in (0.0, 1.0], strictly decreasing with ``rounds_ago``.
    """
    if rounds_ago < 1:
        raise ValueError(f"rounds_ago muss >= 1 sein, nicht {rounds_ago}")
    return DECAY ** (rounds_ago - 1)


class PairingHistory:
    """Tracks how often and how recently two members shared a match.

    Only matches that actually took place (or still may) count; skipped
    and cancelled matches contribute nothing.
    """

    def __init__(self, weights: dict[frozenset, float] | None = None):
        self._weights: dict[frozenset, float] = dict(weights or {})

    @classmethod
    def from_rounds(
        cls,
        rounds: Iterable[MatchRound],
        lookback: int = DEFAULT_LOOKBACK,
    ) -> 'PairingHistory':
        """Build the history from rounds in chronological order.

        Args:
            rounds: Past rounds, oldest first.
            lookback: Number of most recent rounds to consider.

        Returns:
            A PairingHistory over the latest ``lookback`` rounds.
        """
        recent = list(rounds)[-lookback:] if lookback > 0 else []
        weights: dict[frozenset, float] = defaultdict(float)

        for rounds_ago, rnd in enumerate(reversed(recent), start=1):
            w = recency_weight(rounds_ago)
            for match in rnd.matches:
                if not match.status.counts_as_met:
                    continue
                for a, b in combinations(match.participants, 2):
                    weights[_pair_key(a, b)] += w

        log.debug("Historie: %d Paare aus %d Runden", len(weights), len(recent))
        return cls(weights)

    def weight(self, a: str, b: str) -> float:
        """Repeat cost of placing ``a`` and ``b`` in the same group."""
        if a == b:
            return 0.0
        return self._weights.get(_pair_key(a, b), 0.0)

    def have_met(self, a: str, b: str) -> bool:
        return self.weight(a, b) > 0.0

    def repeat_pairs(self, groups: Iterable[Group]) -> list[tuple[str, str]]:
        """List pairs within ``groups`` that already met in the window."""
        repeats = []
        for group in groups:
            for a, b in combinations(group, 2):
                if self.have_met(a, b):
                    repeats.append((a, b))
        return repeats

    def __len__(self) -> int:
        return len(self._weights)
