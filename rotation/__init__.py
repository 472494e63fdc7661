"""Core module for club-rotation: members, clubs, matches and rounds."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

# Roles that organise the club rather than take part in rotations
ADMIN_ROLES = frozenset({'admin', 'club_admin'})

Group = tuple[str, ...]


class MatchFrequency(str, Enum):
    """How often a club wants a new round."""

    WEEKLY = 'weekly'
    BIWEEKLY = 'biweekly'
    MONTHLY = 'monthly'


class MatchStatus(str, Enum):
    """Lifecycle states of a single match."""

    PENDING = 'pending'
    SCHEDULED = 'scheduled'
    COMPLETED = 'completed'
    SKIPPED = 'skipped'
    CANCELLED = 'cancelled'

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES

    @property
    def counts_as_met(self) -> bool:
        """Whether a match in this state counts towards pairing history."""
        return self not in (MatchStatus.SKIPPED, MatchStatus.CANCELLED)


TERMINAL_STATUSES = frozenset({
    MatchStatus.COMPLETED,
    MatchStatus.SKIPPED,
    MatchStatus.CANCELLED,
})


@dataclass
class Member:
    """Represents a club member as supplied by the roster."""

    id: str
    name: str
    whatsapp_number: Optional[str] = None
    is_active: bool = True
    role: str = 'user'
    is_paused: bool = False

    @property
    def is_eligible(self) -> bool:
        """Active, not paused and not an admin."""
        return self.is_active and not self.is_paused and self.role not in ADMIN_ROLES


@dataclass
class Club:
    """Club settings relevant for round generation."""

    id: str
    name: str = ''
    group_size: int = 2
    match_frequency: MatchFrequency = MatchFrequency.WEEKLY


@dataclass(frozen=True)
class Match:
    """One generated group of members within a round."""

    id: str
    club_id: str
    participants: Group
    status: MatchStatus
    created_at: datetime
    scheduled_date: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def has_participant(self, member_id: str) -> bool:
        return member_id in self.participants


@dataclass(frozen=True)
class MatchRound:
    """A single generation event for a club."""

    id: str
    club_id: str
    created_at: datetime
    matches: tuple[Match, ...] = field(default_factory=tuple)

    @property
    def status(self) -> str:
        """'active' while any match can still change, 'closed' otherwise."""
        if any(not m.status.is_terminal for m in self.matches):
            return 'active'
        return 'closed'

    @property
    def members(self) -> set[str]:
        return {p for m in self.matches for p in m.participants}
