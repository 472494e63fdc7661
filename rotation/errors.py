"""Typed failure values returned by the scheduler.

Domain failures are returned, not raised, so a service layer can map them
to user-facing messages. Only internal defects raise.
"""

from dataclasses import dataclass
from typing import Union

from rotation import MatchStatus


@dataclass(frozen=True)
class InvalidGroupSize:
    """The configured group size is not one the engine supports."""

    group_size: int
    allowed: tuple[int, ...]

    @property
    def message(self) -> str:
        allowed = ', '.join(str(a) for a in self.allowed)
        return f"Ungueltige Gruppengroesse {self.group_size} (erlaubt: {allowed})"


@dataclass(frozen=True)
class InvalidTransition:
    """A lifecycle change that is not allowed from the current state."""

    match_id: str
    current: MatchStatus
    requested: Union[MatchStatus, str]
    reason: str = 'transition not allowed'

    @property
    def message(self) -> str:
        return (
            f"Match {self.match_id}: {self.current.value} -> "
            f"{getattr(self.requested, 'value', self.requested)} nicht erlaubt ({self.reason})"
        )


class SingletonGroupViolation(AssertionError):
    """A group with fewer than two members survived partitioning."""

    def __init__(self, group):
        super().__init__(f"Gruppe mit weniger als 2 Mitgliedern: {tuple(group)!r}")
        self.group = tuple(group)
