"""Report generation for rounds (CSV, HTML, summary) and history export."""

import csv
import logging
from pathlib import Path
from typing import Iterable

from jinja2 import Environment, FileSystemLoader

from rotation import Match, MatchRound, Member
from rotation.history import PairingHistory
from rotation.reader import HISTORY_COLUMNS, PARTICIPANT_SEPARATOR

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent / 'templates'

CSV_COLUMNS = [
    'Round_ID',
    'Match_No',
    'Match_ID',
    'Status',
    'Size',
    'Member_IDs',
    'Member_Names',
    'WhatsApp',
    'Repeat_Pairs',
]


def _format_dt(value) -> str:
    return value.isoformat() if value else ''


def _match_to_row(
    rnd: MatchRound,
    number: int,
    match: Match,
    members: dict[str, Member],
    history: PairingHistory | None,
) -> dict:
    """Convert a Match to a flat dict for CSV/HTML output."""
    names = [members[p].name if p in members else p for p in match.participants]
    phones = [members[p].whatsapp_number or '' for p in match.participants if p in members]
    repeats = history.repeat_pairs([match.participants]) if history else []
    return {
        'Round_ID': rnd.id,
        'Match_No': str(number),
        'Match_ID': match.id,
        'Status': match.status.value,
        'Size': str(len(match.participants)),
        'Member_IDs': ', '.join(match.participants),
        'Member_Names': ', '.join(names),
        'WhatsApp': ', '.join(p for p in phones if p),
        'Repeat_Pairs': ', '.join(f'{a}+{b}' for a, b in repeats),
        # Flag for row highlighting in HTML
        '_repeat': bool(repeats),
    }


def _rows(rnd, members, history) -> list[dict]:
    members = {m.id: m for m in (members or [])}
    return [
        _match_to_row(rnd, i, m, members, history)
        for i, m in enumerate(rnd.matches, start=1)
    ]


def write_round_csv(
    rnd: MatchRound,
    output_path: Path,
    members: Iterable[Member] | None = None,
    history: PairingHistory | None = None,
) -> None:
    """Write one round as a CSV report.

    Uses UTF-8 with BOM (utf-8-sig) and semicolon delimiter for
    compatibility with German Excel.

    Args:
        rnd: The generated round.
        output_path: Path for the output CSV file.
        members: Roster used to show names and WhatsApp numbers.
        history: Pairing history used to flag repeat pairs.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(
            f, fieldnames=CSV_COLUMNS, delimiter=';', extrasaction='ignore',
        )
        writer.writeheader()
        for row in _rows(rnd, members, history):
            writer.writerow(row)

    log.info("CSV-Report geschrieben: %s (%d Zeilen)", output_path, len(rnd.matches))


def write_round_html(
    rnd: MatchRound,
    output_path: Path,
    members: Iterable[Member] | None = None,
    history: PairingHistory | None = None,
    club_name: str = '',
) -> None:
    """Write one round as an HTML report using Jinja2."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('round.html')

    html = template.render(
        club_name=club_name or rnd.club_id,
        round=rnd,
        rows=_rows(rnd, members, history),
        stats=compute_stats(rnd, history),
        columns=CSV_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML-Report geschrieben: %s", output_path)


def write_history_csv(rounds: Iterable[MatchRound], output_path: Path) -> None:
    """Write the full round history, one row per match.

    The file is written to a temporary sibling and then renamed, so an
    interrupted run never leaves a half-written history behind.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    tmp = output_path.with_suffix('.tmp')

    count = 0
    with open(tmp, 'w', newline='', encoding='utf-8-sig') as f:
        writer = csv.DictWriter(f, fieldnames=HISTORY_COLUMNS, delimiter=';')
        writer.writeheader()
        for rnd in rounds:
            for m in rnd.matches:
                writer.writerow({
                    'Round_ID': rnd.id,
                    'Club_ID': rnd.club_id,
                    'Round_CreatedAt': _format_dt(rnd.created_at),
                    'Match_ID': m.id,
                    'Status': m.status.value,
                    'Scheduled_Date': _format_dt(m.scheduled_date),
                    'Match_CreatedAt': _format_dt(m.created_at),
                    'Match_UpdatedAt': _format_dt(m.updated_at),
                    'Participants': PARTICIPANT_SEPARATOR.join(m.participants),
                })
                count += 1

    tmp.replace(output_path)
    log.info("Historie geschrieben: %s (%d Matches)", output_path, count)


def compute_stats(rnd: MatchRound, history: PairingHistory | None = None) -> dict:
    """Compute summary statistics for a round."""
    sizes = [len(m.participants) for m in rnd.matches]
    repeats = history.repeat_pairs(m.participants for m in rnd.matches) if history else []
    by_size: dict[int, int] = {}
    for s in sizes:
        by_size[s] = by_size.get(s, 0) + 1
    return {
        'matches': len(rnd.matches),
        'members': sum(sizes),
        'by_size': dict(sorted(by_size.items())),
        'repeat_pairs': len(repeats),
        'status': rnd.status,
    }


def print_summary(rnd: MatchRound, history: PairingHistory | None = None, club_name: str = '') -> None:
    """Print a summary of a round to stdout."""
    stats = compute_stats(rnd, history)

    print(f"\n=== Runde: {club_name or rnd.club_id} ({rnd.created_at:%Y-%m-%d %H:%M}) ===")
    print(f"Gruppen gesamt:            {stats['matches']:>5}")
    print(f"Mitglieder eingeteilt:     {stats['members']:>5}")
    for size, count in stats['by_size'].items():
        print(f"  - Gruppen mit {size}:        {count:>5}")
    print("---")
    print(f"Wiederholte Paarungen:     {stats['repeat_pairs']:>5}")
    print()
