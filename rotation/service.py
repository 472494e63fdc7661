"""Round generation and match advancement on top of the collaborators."""

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from rotation import Club, MatchRound, MatchStatus
from rotation.errors import InvalidGroupSize, InvalidTransition
from rotation.history import DEFAULT_LOOKBACK, PairingHistory
from rotation.lifecycle import (
    Effect,
    NotifyParticipants,
    PersistChange,
    TransitionContext,
    TransitionResult,
    transition,
)
from rotation.partition import partition
from rotation.providers import HistoryProvider, InMemoryRoundStore, RosterProvider
from rotation.rounds import build_round, utcnow

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of one generation request.

    ``round`` is None when nothing was generated: either too few eligible
    members (``error`` is None) or an invalid configuration.
    """

    round: Optional[MatchRound] = None
    error: Optional[InvalidGroupSize] = None
    effects: tuple[Effect, ...] = field(default_factory=tuple)

    @property
    def generated(self) -> bool:
        return self.round is not None


class RotationService:
    """Generates rounds for clubs and advances their matches."""

    def __init__(self, roster: RosterProvider, store: InMemoryRoundStore,
                 history: Optional[HistoryProvider] = None):
        self.roster = roster
        self.store = store
        self.history = history or store
        self._locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _club_lock(self, club_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks[club_id]

    def generate_round(
        self,
        club: Club,
        seed: Optional[int] = None,
        now: Optional[datetime] = None,
        lookback: int = DEFAULT_LOOKBACK,
    ) -> GenerationResult:
        """Generate, store and announce a new round for ``club``.

        Only one generation per club runs at a time.
        """
        now = now or utcnow()
        if seed is None:
            seed = int(now.timestamp())

        with self._club_lock(club.id):
            members = self.roster.get_active_members(club.id)
            recent = self.history.get_recent_rounds(club.id, lookback)
            pairing = PairingHistory.from_rounds(recent, lookback)

            groups = partition(members, club.group_size, pairing.weight, seed=seed)
            if isinstance(groups, InvalidGroupSize):
                return GenerationResult(error=groups)
            if not groups:
                log.info("Club %s: keine Runde erzeugt (%d berechtigte Mitglieder)", club.id, len(members))
                return GenerationResult()

            rnd = build_round(club.id, groups, now=now)
            self.store.add_round(rnd)

        effects = tuple(
            NotifyParticipants(match_id=m.id, participants=m.participants, reason='generated')
            for m in rnd.matches
        )
        repeats = pairing.repeat_pairs(m.participants for m in rnd.matches)
        if repeats:
            log.info("Club %s: %d wiederholte Paarungen unvermeidbar", club.id, len(repeats))
        return GenerationResult(round=rnd, effects=effects)

    def advance_match(
        self,
        match_id: str,
        to: MatchStatus,
        context: TransitionContext,
    ) -> TransitionResult | InvalidTransition:
        """Apply a transition and persist it; other effects go to the caller.

        Read, transition and write run under the club lock.

        Raises:
            KeyError: If the match is unknown.
        """
        _, match = self.store.find_match(match_id)
        with self._club_lock(match.club_id):
            _, match = self.store.find_match(match_id)
            result = transition(match, to, context)
            if isinstance(result, InvalidTransition):
                return result

            remaining = []
            for effect in result.effects:
                if isinstance(effect, PersistChange):
                    self.store.replace_match(effect.match)
                else:
                    remaining.append(effect)
        return TransitionResult(match=result.match, effects=tuple(remaining))
