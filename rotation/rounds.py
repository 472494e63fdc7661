"""Round builder and round queries."""

import calendar
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterable, Optional

from rotation import Club, Group, Match, MatchFrequency, MatchRound, MatchStatus
from rotation.partition import check_no_singletons

log = logging.getLogger(__name__)

_FIXED_INTERVALS = {
    MatchFrequency.WEEKLY: timedelta(days=7),
    MatchFrequency.BIWEEKLY: timedelta(days=14),
}


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_round(
    club_id: str,
    groups: Iterable[Group],
    now: Optional[datetime] = None,
    id_factory: Callable[[], str] = _new_id,
) -> MatchRound:
    """Wrap a partition into a new round of pending matches.

    Args:
        club_id: Club the round belongs to.
        groups: Partition as returned by ``partition``.
        now: Creation timestamp; defaults to the current UTC time.
        id_factory: Source of new round and match ids.

    Returns:
        A MatchRound whose matches are all PENDING.

    Raises:
        SingletonGroupViolation: If a group has fewer than 2 members.
        ValueError: If a member appears in more than one group.
    """
    groups = [tuple(g) for g in groups]
    check_no_singletons(groups)

    seen: set[str] = set()
    for group in groups:
        for member_id in group:
            if member_id in seen:
                raise ValueError(f"Mitglied {member_id} ist mehrfach in der Runde")
            seen.add(member_id)

    created_at = now or utcnow()
    matches = tuple(
        Match(
            id=id_factory(),
            club_id=club_id,
            participants=group,
            status=MatchStatus.PENDING,
            created_at=created_at,
            updated_at=created_at,
        )
        for group in groups
    )
    rnd = MatchRound(id=id_factory(), club_id=club_id, created_at=created_at, matches=matches)

    log.info(
        "Runde %s fuer Club %s erstellt: %d Matches, %d Mitglieder",
        rnd.id, club_id, len(matches), len(seen),
    )
    return rnd


def _add_month(moment: datetime) -> datetime:
    year = moment.year + moment.month // 12
    month = moment.month % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def next_round_due(frequency: MatchFrequency, last_created_at: datetime) -> datetime:
    """Return when the round after one created at ``last_created_at`` is due."""
    frequency = MatchFrequency(frequency)
    if frequency is MatchFrequency.MONTHLY:
        return _add_month(last_created_at)
    return last_created_at + _FIXED_INTERVALS[frequency]


def is_round_due(club: Club, rounds: Iterable[MatchRound], now: Optional[datetime] = None) -> bool:
    """Check whether ``club`` should get a new round at ``now``."""
    own = [r for r in rounds if r.club_id == club.id]
    if not own:
        return True
    latest = max(own, key=lambda r: r.created_at)
    return (now or utcnow()) >= next_round_due(club.match_frequency, latest.created_at)


def matches_for_member(rounds: Iterable[MatchRound], member_id: str) -> list[Match]:
    """All matches a member took part in, oldest round first."""
    return [m for r in rounds for m in r.matches if m.has_participant(member_id)]


def matches_with_status(rounds: Iterable[MatchRound], status: MatchStatus) -> list[Match]:
    status = MatchStatus(status)
    return [m for r in rounds for m in r.matches if m.status is status]
