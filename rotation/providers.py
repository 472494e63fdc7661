"""Collaborator interfaces and their in-memory implementations."""

import logging
from collections import defaultdict
from dataclasses import replace
from typing import Iterable, Protocol

from rotation import Match, MatchRound, Member

log = logging.getLogger(__name__)


class RosterProvider(Protocol):
    def get_active_members(self, club_id: str) -> list[str]:
        ...


class HistoryProvider(Protocol):
    def get_recent_rounds(self, club_id: str, lookback: int) -> list[MatchRound]:
        ...


class InMemoryRoster:
    """Roster backed by a mapping of club id to members."""

    def __init__(self, members_by_club: dict[str, list[Member]] | None = None):
        self._members: dict[str, list[Member]] = {
            club_id: list(members) for club_id, members in (members_by_club or {}).items()
        }

    def add_members(self, club_id: str, members: Iterable[Member]) -> None:
        self._members.setdefault(club_id, []).extend(members)

    def members(self, club_id: str) -> list[Member]:
        return list(self._members.get(club_id, []))

    def get_active_members(self, club_id: str) -> list[str]:
        """Ids of eligible members in roster order."""
        return [m.id for m in self._members.get(club_id, []) if m.is_eligible]


class InMemoryRoundStore:
    """Append-only, insertion-ordered round log per club.

    Rounds are never removed; updating a match stores a new round value
    in place of the old one.
    """

    def __init__(self, rounds: Iterable[MatchRound] = ()):
        self._rounds: dict[str, list[MatchRound]] = defaultdict(list)
        for rnd in rounds:
            self.add_round(rnd)

    def add_round(self, rnd: MatchRound) -> None:
        own = self._rounds[rnd.club_id]
        if any(r.id == rnd.id for r in own):
            raise ValueError(f"Runde {rnd.id} existiert bereits")
        own.append(rnd)
        log.debug("Runde %s gespeichert (Club %s)", rnd.id, rnd.club_id)

    def get_recent_rounds(self, club_id: str, lookback: int) -> list[MatchRound]:
        """Latest ``lookback`` rounds of a club, oldest first."""
        if lookback <= 0:
            return []
        return list(self._rounds.get(club_id, [])[-lookback:])

    def all_rounds(self, club_id: str | None = None) -> list[MatchRound]:
        if club_id is not None:
            return list(self._rounds.get(club_id, []))
        return [r for rounds in self._rounds.values() for r in rounds]

    def find_match(self, match_id: str) -> tuple[MatchRound, Match]:
        """Return the round and match for ``match_id``.

        Raises:
            KeyError: If no stored round holds the match.
        """
        for rounds in self._rounds.values():
            for rnd in rounds:
                for match in rnd.matches:
                    if match.id == match_id:
                        return rnd, match
        raise KeyError(match_id)

    def replace_match(self, match: Match) -> MatchRound:
        """Store an updated version of an existing match."""
        rnd, _ = self.find_match(match.id)
        updated = replace(
            rnd,
            matches=tuple(match if m.id == match.id else m for m in rnd.matches),
        )
        own = self._rounds[rnd.club_id]
        own[own.index(rnd)] = updated
        return updated
