"""Match lifecycle state machine.

The manager never performs I/O. A successful transition returns the
updated match together with the effects the caller should carry out.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Union

from rotation import Match, MatchStatus
from rotation.errors import InvalidTransition

log = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[MatchStatus, frozenset] = {
    MatchStatus.PENDING: frozenset({
        MatchStatus.SCHEDULED,
        MatchStatus.SKIPPED,
        MatchStatus.CANCELLED,
    }),
    MatchStatus.SCHEDULED: frozenset({
        MatchStatus.COMPLETED,
        MatchStatus.CANCELLED,
    }),
}

# Notification reason per target state; COMPLETED is only persisted
NOTIFY_REASONS = {
    MatchStatus.SCHEDULED: 'scheduled',
    MatchStatus.SKIPPED: 'skipped',
    MatchStatus.CANCELLED: 'cancelled',
}


@dataclass(frozen=True)
class TransitionContext:
    """Inputs of a transition besides the match and the target state."""

    now: datetime
    scheduled_date: Optional[datetime] = None
    confirmed: bool = False
    actor_id: Optional[str] = None


@dataclass(frozen=True)
class NotifyParticipants:
    """Ask the caller to notify the participants of a match."""

    match_id: str
    participants: tuple[str, ...]
    reason: str
    scheduled_date: Optional[datetime] = None


@dataclass(frozen=True)
class PersistChange:
    """Ask the caller to store the updated match."""

    match: Match


Effect = Union[NotifyParticipants, PersistChange]


@dataclass(frozen=True)
class TransitionResult:
    match: Match
    effects: tuple[Effect, ...] = field(default_factory=tuple)


def allowed_targets(status: MatchStatus) -> frozenset:
    """States reachable from ``status`` in one step."""
    return ALLOWED_TRANSITIONS.get(MatchStatus(status), frozenset())


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are taken as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _check_preconditions(match: Match, to: MatchStatus, context: TransitionContext) -> Optional[str]:
    """Return a failure reason, or None if the transition may proceed."""
    if to is MatchStatus.SCHEDULED:
        if context.scheduled_date is None:
            return 'scheduled date missing'
        if context.scheduled_date < context.now:
            return 'scheduled date is in the past'
    elif to is MatchStatus.COMPLETED:
        if not context.confirmed and (
            match.scheduled_date is None or match.scheduled_date > context.now
        ):
            return 'scheduled date not reached and not confirmed'
    return None


def transition(
    match: Match,
    to: MatchStatus,
    context: TransitionContext,
) -> TransitionResult | InvalidTransition:
    """Move ``match`` to state ``to``.

    Args:
        match: Current match; never modified.
        to: Requested state.
        context: Current time, the new scheduled date (for SCHEDULED) and
            whether completion was explicitly confirmed. Naive datetimes
            are taken as UTC.

    Returns:
        TransitionResult with the updated match and requested effects, or
        InvalidTransition naming the current and requested states, also
        for a status value that is not a MatchStatus.
    """
    try:
        to = MatchStatus(to)
    except ValueError:
        log.warning("Unbekannter Status %r fuer Match %s", to, match.id)
        return InvalidTransition(match_id=match.id, current=match.status, requested=to, reason='unknown status')

    match = replace(match, scheduled_date=_as_utc(match.scheduled_date))
    context = replace(context, now=_as_utc(context.now), scheduled_date=_as_utc(context.scheduled_date))

    if to not in allowed_targets(match.status):
        log.warning("Uebergang %s -> %s fuer Match %s abgelehnt", match.status.value, to.value, match.id)
        return InvalidTransition(match_id=match.id, current=match.status, requested=to)

    reason = _check_preconditions(match, to, context)
    if reason:
        log.warning("Match %s: %s", match.id, reason)
        return InvalidTransition(match_id=match.id, current=match.status, requested=to, reason=reason)

    changes = {'status': to, 'updated_at': context.now}
    if to is MatchStatus.SCHEDULED:
        changes['scheduled_date'] = context.scheduled_date
    updated = replace(match, **changes)

    effects: list[Effect] = [PersistChange(match=updated)]
    if to in NOTIFY_REASONS:
        effects.append(NotifyParticipants(
            match_id=updated.id,
            participants=updated.participants,
            reason=NOTIFY_REASONS[to],
            scheduled_date=updated.scheduled_date,
        ))

    log.info("Match %s: %s -> %s", match.id, match.status.value, to.value)
    return TransitionResult(match=updated, effects=tuple(effects))
