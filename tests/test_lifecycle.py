"""Tests for rotation.lifecycle module."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from rotation import MatchStatus, TERMINAL_STATUSES
from rotation.errors import InvalidTransition
from rotation.lifecycle import (
    NotifyParticipants,
    PersistChange,
    TransitionContext,
    TransitionResult,
    allowed_targets,
    transition,
)
from rotation.rounds import build_round


@pytest.fixture
def pending(now):
    return build_round('c1', [('a', 'b')], now=now - timedelta(days=1)).matches[0]


@pytest.fixture
def scheduled(pending, now):
    return replace(pending, status=MatchStatus.SCHEDULED, scheduled_date=now + timedelta(days=2))


class TestSchedule:
    """PENDING -> SCHEDULED."""

    def test_future_date_succeeds(self, pending, now):
        date = now + timedelta(days=3)
        result = transition(pending, MatchStatus.SCHEDULED, TransitionContext(now=now, scheduled_date=date))
        assert isinstance(result, TransitionResult)
        assert result.match.status is MatchStatus.SCHEDULED
        assert result.match.scheduled_date == date
        assert result.match.updated_at == now

    def test_notifies_participants(self, pending, now):
        date = now + timedelta(days=3)
        result = transition(pending, MatchStatus.SCHEDULED, TransitionContext(now=now, scheduled_date=date))
        notify = [e for e in result.effects if isinstance(e, NotifyParticipants)]
        assert len(notify) == 1
        assert notify[0].participants == ('a', 'b')
        assert notify[0].reason == 'scheduled'
        assert notify[0].scheduled_date == date
        assert PersistChange(match=result.match) in result.effects

    def test_missing_date_fails(self, pending, now):
        result = transition(pending, MatchStatus.SCHEDULED, TransitionContext(now=now))
        assert isinstance(result, InvalidTransition)
        assert result.reason == 'scheduled date missing'

    def test_past_date_fails(self, pending, now):
        ctx = TransitionContext(now=now, scheduled_date=now - timedelta(minutes=1))
        result = transition(pending, MatchStatus.SCHEDULED, ctx)
        assert isinstance(result, InvalidTransition)

    def test_original_unchanged(self, pending, now):
        transition(pending, MatchStatus.SCHEDULED, TransitionContext(now=now, scheduled_date=now + timedelta(days=1)))
        assert pending.status is MatchStatus.PENDING
        assert pending.scheduled_date is None

    def test_accepts_string_status(self, pending, now):
        ctx = TransitionContext(now=now, scheduled_date=now + timedelta(days=1))
        assert isinstance(transition(pending, 'scheduled', ctx), TransitionResult)

    def test_unknown_status_is_value(self, pending, now):
        result = transition(pending, 'played', TransitionContext(now=now))
        assert isinstance(result, InvalidTransition)
        assert result.reason == 'unknown status'
        assert 'played' in result.message

    def test_naive_date_taken_as_utc(self, pending, now):
        naive = datetime(2026, 3, 5, 18)
        result = transition(pending, MatchStatus.SCHEDULED, TransitionContext(now=now, scheduled_date=naive))
        assert result.match.scheduled_date == naive.replace(tzinfo=timezone.utc)


class TestComplete:
    """SCHEDULED -> COMPLETED."""

    def test_pending_cannot_complete(self, pending, now):
        result = transition(pending, MatchStatus.COMPLETED, TransitionContext(now=now, confirmed=True))
        assert isinstance(result, InvalidTransition)
        assert result.current is MatchStatus.PENDING
        assert result.requested is MatchStatus.COMPLETED

    def test_after_date_passed(self, scheduled, now):
        later = scheduled.scheduled_date + timedelta(hours=1)
        result = transition(scheduled, MatchStatus.COMPLETED, TransitionContext(now=later))
        assert result.match.status is MatchStatus.COMPLETED
        assert result.effects == (PersistChange(match=result.match),)

    def test_naive_now_against_aware_date(self, scheduled):
        later = (scheduled.scheduled_date + timedelta(hours=1)).replace(tzinfo=None)
        result = transition(scheduled, MatchStatus.COMPLETED, TransitionContext(now=later))
        assert result.match.status is MatchStatus.COMPLETED
        assert result.match.updated_at.tzinfo is not None

    def test_before_date_needs_confirmation(self, scheduled, now):
        result = transition(scheduled, MatchStatus.COMPLETED, TransitionContext(now=now))
        assert isinstance(result, InvalidTransition)

    def test_confirmed_before_date(self, scheduled, now):
        result = transition(scheduled, MatchStatus.COMPLETED, TransitionContext(now=now, confirmed=True))
        assert result.match.status is MatchStatus.COMPLETED
        assert result.match.scheduled_date == scheduled.scheduled_date


class TestSkipAndCancel:
    """Skip and cancel paths."""

    def test_skip_pending(self, pending, now):
        result = transition(pending, MatchStatus.SKIPPED, TransitionContext(now=now))
        assert result.match.status is MatchStatus.SKIPPED
        assert any(isinstance(e, NotifyParticipants) and e.reason == 'skipped' for e in result.effects)

    def test_skip_scheduled_fails(self, scheduled, now):
        assert isinstance(transition(scheduled, MatchStatus.SKIPPED, TransitionContext(now=now)), InvalidTransition)

    @pytest.mark.parametrize('fixture', ['pending', 'scheduled'])
    def test_cancel(self, request, fixture, now):
        match = request.getfixturevalue(fixture)
        result = transition(match, MatchStatus.CANCELLED, TransitionContext(now=now))
        assert result.match.status is MatchStatus.CANCELLED
        assert any(isinstance(e, NotifyParticipants) and e.reason == 'cancelled' for e in result.effects)

    def test_reschedule_not_allowed(self, scheduled, now):
        ctx = TransitionContext(now=now, scheduled_date=now + timedelta(days=5))
        assert isinstance(transition(scheduled, MatchStatus.SCHEDULED, ctx), InvalidTransition)


class TestTerminalStates:
    """No transition leaves a terminal state."""

    @pytest.mark.parametrize('terminal', sorted(TERMINAL_STATUSES, key=lambda s: s.value))
    @pytest.mark.parametrize('target', list(MatchStatus))
    def test_terminal_rejects_everything(self, pending, now, terminal, target):
        match = replace(pending, status=terminal, scheduled_date=now - timedelta(days=1))
        ctx = TransitionContext(now=now, scheduled_date=now + timedelta(days=1), confirmed=True)
        result = transition(match, target, ctx)
        assert isinstance(result, InvalidTransition)
        assert result.current is terminal
        assert result.requested is target

    def test_allowed_targets_empty(self):
        for status in TERMINAL_STATUSES:
            assert allowed_targets(status) == frozenset()

    def test_message(self, pending, now):
        match = replace(pending, status=MatchStatus.COMPLETED)
        result = transition(match, MatchStatus.CANCELLED, TransitionContext(now=now))
        assert 'completed -> cancelled' in result.message
