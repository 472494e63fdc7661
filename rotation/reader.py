"""CSV readers for rosters and round history.

Handles UTF-16LE (with BOM) and UTF-8 encoded files; fields are trimmed
and whitespace-normalized.
"""

import csv
import io
import logging
import re
from collections import OrderedDict
from datetime import datetime, timezone
from pathlib import Path

from rotation import Match, MatchRound, MatchStatus, Member
from rotation.names import MemberResolver

log = logging.getLogger(__name__)

# Matches any sequence of whitespace (including Unicode whitespace like U+2006)
_WHITESPACE_RE = re.compile(r'\s+')

_TRUE_VALUES = {'1', 'true', 'yes', 'ja', 'x', 'y', 'j'}
_FALSE_VALUES = {'0', 'false', 'no', 'nein', 'n', ''}

ROSTER_COLUMNS = {'Member ID', 'Name', 'WhatsApp', 'Active', 'Role'}

HISTORY_COLUMNS = [
    'Round_ID',
    'Club_ID',
    'Round_CreatedAt',
    'Match_ID',
    'Status',
    'Scheduled_Date',
    'Match_CreatedAt',
    'Match_UpdatedAt',
    'Participants',
]

PARTICIPANT_SEPARATOR = ','


def detect_encoding(path: Path) -> str:
    """Detect file encoding by checking for BOM bytes.

    Args:
        path: Path to the CSV file.

    Returns:
        Encoding string suitable for open().
    """
    with open(path, 'rb') as f:
        bom = f.read(2)
    if bom == b'\xff\xfe':
        return 'utf-16-le'
    return 'utf-8-sig'


def normalize_whitespace(value: str) -> str:
    """Collapse whitespace runs into a single space and strip the ends."""
    return _WHITESPACE_RE.sub(' ', value).strip()


def parse_bool(value: str) -> bool:
    """Parse a yes/no style cell.

    Raises:
        ValueError: If the value is not a recognised boolean.
    """
    v = value.strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    raise ValueError(f"Kein Wahrheitswert: {value!r}")


def parse_datetime(value: str) -> datetime | None:
    """Parse an ISO timestamp; naive values are taken as UTC."""
    value = value.strip()
    if not value:
        return None
    if value.endswith('Z'):
        value = value[:-1] + '+00:00'
    moment = datetime.fromisoformat(value)
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def _read_rows(path: Path, delimiter: str, required: set[str]) -> csv.DictReader:
    encoding = detect_encoding(path)
    with open(path, 'r', encoding=encoding) as f:
        content = f.read()

    # Strip BOM if present
    content = content.lstrip('\ufeff')

    reader = csv.DictReader(io.StringIO(content), delimiter=delimiter)
    if reader.fieldnames is None:
        raise ValueError(f"Datei {path} ist leer oder hat keine Header-Zeile.")
    actual_cols = {normalize_whitespace(c) for c in reader.fieldnames}
    missing = required - actual_cols
    if missing:
        raise ValueError(
            f"Fehlende Spalten in {path}: {', '.join(sorted(missing))}"
        )
    return reader


def _clean(row: dict) -> dict[str, str]:
    return {normalize_whitespace(k): normalize_whitespace(v or '')
            for k, v in row.items() if k is not None}


def read_roster(path: str | Path) -> list[Member]:
    """Read club members from a tab-separated roster file.

    Args:
        path: Path to the roster CSV.

    Returns:
        List of Member objects in file order.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    reader = _read_rows(path, '\t', ROSTER_COLUMNS)

    members: list[Member] = []
    seen: set[str] = set()
    for row_num, row in enumerate(reader, start=2):
        cleaned = _clean(row)
        try:
            member_id = cleaned['Member ID']
            if not member_id:
                raise ValueError("leere Member ID")
            if member_id in seen:
                raise ValueError(f"doppelte Member ID {member_id}")
            member = Member(
                id=member_id,
                name=cleaned.get('Name', ''),
                whatsapp_number=cleaned.get('WhatsApp') or None,
                is_active=parse_bool(cleaned.get('Active', '')),
                role=(cleaned.get('Role') or 'user').lower(),
                is_paused=parse_bool(cleaned.get('Paused', '')),
            )
            members.append(member)
            seen.add(member_id)
        except (ValueError, KeyError) as exc:
            log.warning("Zeile %d in %s uebersprungen: %s", row_num, path, exc)

    log.info("%d Mitglieder gelesen aus %s", len(members), path)
    return members


def read_history(
    path: str | Path,
    resolver: MemberResolver | None = None,
) -> list[MatchRound]:
    """Read past rounds from a semicolon-separated history file.

    Rows are grouped into rounds by Round_ID; rounds keep file order.
    Participant tokens are resolved through ``resolver`` when given;
    unresolvable tokens are kept as written.

    Args:
        path: Path to the history CSV.
        resolver: Optional roster-backed resolver for ids and names.

    Returns:
        List of MatchRound in file order (oldest first).

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If required columns are missing.
    """
    path = Path(path)
    reader = _read_rows(path, ';', set(HISTORY_COLUMNS) - {'Match_UpdatedAt'})

    rounds: OrderedDict[str, dict] = OrderedDict()
    for row_num, row in enumerate(reader, start=2):
        cleaned = _clean(row)
        try:
            participants = []
            for token in cleaned['Participants'].split(PARTICIPANT_SEPARATOR):
                token = token.strip()
                if not token:
                    continue
                member_id = resolver.resolve(token) if resolver else token
                if member_id is None:
                    log.warning("Zeile %d in %s: Teilnehmer %r unbekannt", row_num, path, token)
                    member_id = token
                participants.append(member_id)

            created_at = parse_datetime(cleaned['Match_CreatedAt'])
            round_created = parse_datetime(cleaned['Round_CreatedAt'])
            if created_at is None or round_created is None:
                raise ValueError("Zeitstempel fehlt")

            match = Match(
                id=cleaned['Match_ID'],
                club_id=cleaned['Club_ID'],
                participants=tuple(participants),
                status=MatchStatus(cleaned['Status'].lower()),
                created_at=created_at,
                scheduled_date=parse_datetime(cleaned['Scheduled_Date']),
                updated_at=parse_datetime(cleaned.get('Match_UpdatedAt', '')) or created_at,
            )
        except (ValueError, KeyError) as exc:
            log.warning("Zeile %d in %s uebersprungen: %s", row_num, path, exc)
            continue

        entry = rounds.setdefault(cleaned['Round_ID'], {
            'club_id': cleaned['Club_ID'],
            'created_at': round_created,
            'matches': [],
        })
        entry['matches'].append(match)

    result = [
        MatchRound(id=round_id, club_id=e['club_id'], created_at=e['created_at'],
                   matches=tuple(e['matches']))
        for round_id, e in rounds.items()
    ]
    log.info("%d Runden gelesen aus %s", len(result), path)
    return result
