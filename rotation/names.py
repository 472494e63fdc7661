"""Resolve participant references (ids or names) against a roster."""

import logging
from collections import defaultdict

from rapidfuzz.distance import JaroWinkler

from rotation import Member

log = logging.getLogger(__name__)

DEFAULT_NAME_THRESHOLD = 0.90


def _normalize_key(value: str) -> str:
    """Normalize a name for hash-index lookup."""
    return ' '.join(value.split()).upper()


def _build_name_index(members: list[Member]) -> dict[str, list[Member]]:
    index: dict[str, list[Member]] = defaultdict(list)
    for m in members:
        index[_normalize_key(m.name)].append(m)
    return dict(index)


class MemberResolver:
    """Maps history tokens to member ids.

    Lookup order:
    1. Exact member id
    2. Exact name (case- and whitespace-insensitive)
    3. Fuzzy name (Jaro-Winkler)
    """

    def __init__(self, members: list[Member], threshold: float = DEFAULT_NAME_THRESHOLD):
        self.threshold = threshold
        self._by_id = {m.id: m for m in members}
        self._by_name = _build_name_index(members)
        self._members = list(members)

    def _fuzzy(self, key: str) -> Member | None:
        best: Member | None = None
        best_sim = -1.0
        for m in self._members:
            sim = JaroWinkler.similarity(key, _normalize_key(m.name))
            if sim >= self.threshold and sim > best_sim:
                best, best_sim = m, sim
        if best is not None:
            log.debug("Name %r unscharf aufgeloest zu %s (%.3f)", key, best.id, best_sim)
        return best

    def resolve(self, token: str) -> str | None:
        """Return the member id for ``token``, or None if unresolvable."""
        token = token.strip()
        if not token:
            return None
        if token in self._by_id:
            return token

        key = _normalize_key(token)
        candidates = self._by_name.get(key)
        if candidates:
            if len(candidates) > 1:
                log.warning("Name %r ist mehrdeutig, verwende %s", token, candidates[0].id)
            return candidates[0].id

        match = self._fuzzy(key)
        return match.id if match else None
