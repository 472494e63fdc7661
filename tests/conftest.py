"""Shared test fixtures."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from rotation import Member


NOW = datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)

ROSTER_HEADER = 'Member ID\tName\tWhatsApp\tActive\tRole\tPaused\n'


@pytest.fixture
def now() -> datetime:
    """Fixed reference time."""
    return NOW


@pytest.fixture
def members() -> list[Member]:
    """Seven eligible members plus an admin and an inactive member."""
    roster = [
        Member(id=f'm{i}', name=name, whatsapp_number=f'+49170000000{i}')
        for i, name in enumerate(
            ['Anna Berg', 'Ben Vogel', 'Clara Fuchs', 'David Wolf',
             'Eva Lange', 'Felix Roth', 'Greta Hahn'],
            start=1,
        )
    ]
    roster.append(Member(id='a1', name='Otto Admin', role='club_admin'))
    roster.append(Member(id='x1', name='Ina Aktiv', is_active=False))
    return roster


@pytest.fixture
def roster_file(tmp_path) -> Path:
    """A small tab-separated roster file."""
    path = tmp_path / 'roster.csv'
    path.write_text(
        ROSTER_HEADER
        + 'm1\tAnna  Berg\t+491701\tja\tuser\t\n'
        + 'm2\tBen Vogel\t\t1\tuser\tnein\n'
        + 'm3\tClara Fuchs\t+491703\ttrue\tuser\tja\n'
        + 'a1\tOtto Admin\t\tyes\tclub_admin\t\n'
        + 'm4\tDavid Wolf\t\tnein\tuser\t\n',
        encoding='utf-8',
    )
    return path
