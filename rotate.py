"""club-rotation – CLI-Tool zum Einteilen von Clubmitgliedern in Runden."""

import argparse
import logging
import sys
from pathlib import Path

from rotation import Club, MatchFrequency, MatchStatus
from rotation.errors import InvalidTransition
from rotation.history import DEFAULT_LOOKBACK, PairingHistory
from rotation.lifecycle import NotifyParticipants, TransitionContext
from rotation.names import DEFAULT_NAME_THRESHOLD, MemberResolver
from rotation.providers import InMemoryRoster, InMemoryRoundStore
from rotation.reader import parse_datetime, read_history, read_roster
from rotation.reporter import print_summary, write_history_csv, write_round_csv, write_round_html
from rotation.rounds import is_round_due, utcnow
from rotation.service import RotationService


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Einteilung von Clubmitgliedern in kleine Gruppen mit wenig Wiederholungen.',
        prog='rotate.py',
    )
    parser.add_argument(
        '-v', '--verbose', action='store_true',
        help='Ausfuehrliche Log-Ausgabe',
    )
    sub = parser.add_subparsers(dest='command', required=True)

    gen = sub.add_parser('generate', help='Neue Runde erzeugen')
    gen.add_argument(
        '--roster', required=True, type=Path,
        help='Pfad zur Mitglieder-CSV (tab-getrennt)',
    )
    gen.add_argument(
        '--club-id', required=True,
        help='ID des Clubs',
    )
    gen.add_argument(
        '--club-name', default='',
        help='Anzeigename des Clubs fuer Reports',
    )
    gen.add_argument(
        '--group-size', type=int, default=2,
        help='Gruppengroesse, 2 oder 3 (Standard: 2)',
    )
    gen.add_argument(
        '--frequency', type=MatchFrequency, default=MatchFrequency.WEEKLY,
        help='Rundenrhythmus: weekly, biweekly, monthly (Standard: weekly)',
    )
    gen.add_argument(
        '--history', type=Path,
        help='Pfad zur Historien-CSV; die neue Runde wird angehaengt',
    )
    gen.add_argument(
        '--lookback', type=int, default=DEFAULT_LOOKBACK,
        help=f'Anzahl beruecksichtigter Vorrunden (Standard: {DEFAULT_LOOKBACK})',
    )
    gen.add_argument(
        '--seed', type=int,
        help='Startwert fuer die Zufallsreihenfolge (Standard: Zeitstempel)',
    )
    gen.add_argument(
        '--name-threshold', type=float, default=DEFAULT_NAME_THRESHOLD,
        help=f'Schwellenwert fuer unscharfe Namen in der Historie (Standard: {DEFAULT_NAME_THRESHOLD})',
    )
    gen.add_argument(
        '--force', action='store_true',
        help='Runde auch erzeugen, wenn sie laut Rhythmus noch nicht faellig ist',
    )
    gen.add_argument(
        '--output', type=Path,
        help='Pfad fuer den Runden-Report (CSV)',
    )
    gen.add_argument(
        '--html', action='store_true',
        help='Zusaetzlich einen HTML-Report erzeugen',
    )
    gen.add_argument(
        '--summary', action='store_true',
        help='Zusammenfassung auf stdout ausgeben',
    )

    adv = sub.add_parser('advance', help='Status eines Matches aendern')
    adv.add_argument(
        '--history', required=True, type=Path,
        help='Pfad zur Historien-CSV',
    )
    adv.add_argument(
        '--match-id', required=True,
        help='ID des Matches',
    )
    adv.add_argument(
        '--status', required=True, type=MatchStatus,
        help='Zielstatus: scheduled, completed, skipped, cancelled',
    )
    adv.add_argument(
        '--date',
        help='Termin (ISO-Format), erforderlich fuer scheduled',
    )
    adv.add_argument(
        '--confirm', action='store_true',
        help='Abschluss bestaetigen, auch wenn der Termin noch nicht erreicht ist',
    )
    return parser


def _log_effects(effects) -> None:
    for effect in effects:
        if isinstance(effect, NotifyParticipants):
            logging.info(
                "Benachrichtigung angefordert (%s): Match %s an %s",
                effect.reason, effect.match_id, ', '.join(effect.participants),
            )


def run_generate(args, parser: argparse.ArgumentParser) -> None:
    """Generate one round and write reports and history."""
    members = read_roster(args.roster)

    rounds = []
    if args.history and args.history.exists():
        resolver = MemberResolver(members, args.name_threshold)
        rounds = read_history(args.history, resolver)

    club = Club(
        id=args.club_id,
        name=args.club_name,
        group_size=args.group_size,
        match_frequency=args.frequency,
    )
    if not args.force and not is_round_due(club, rounds):
        logging.warning("Naechste Runde fuer Club %s ist noch nicht faellig (--force zum Erzwingen).", club.id)
        return

    store = InMemoryRoundStore(rounds)
    service = RotationService(InMemoryRoster({club.id: members}), store)
    pairing = PairingHistory.from_rounds(store.all_rounds(club.id), args.lookback)

    result = service.generate_round(club, seed=args.seed, lookback=args.lookback)
    if result.error is not None:
        parser.error(result.error.message)
    if not result.generated:
        logging.warning("Zu wenige berechtigte Mitglieder, keine Runde erzeugt.")
        return

    rnd = result.round
    if args.output:
        write_round_csv(rnd, args.output, members, pairing)
        if args.html:
            write_round_html(rnd, args.output.with_suffix('.html'), members, pairing, args.club_name)
    if args.history:
        write_history_csv(store.all_rounds(), args.history)
    if args.summary:
        print_summary(rnd, pairing, args.club_name)

    _log_effects(result.effects)


def run_advance(args, parser: argparse.ArgumentParser) -> None:
    """Apply one status change to a stored match."""
    store = InMemoryRoundStore(read_history(args.history))
    service = RotationService(InMemoryRoster(), store)

    try:
        scheduled_date = parse_datetime(args.date) if args.date else None
    except ValueError:
        parser.error(f'Ungueltiges Datum: {args.date}')

    context = TransitionContext(now=utcnow(), scheduled_date=scheduled_date, confirmed=args.confirm)
    try:
        result = service.advance_match(args.match_id, args.status, context)
    except KeyError:
        parser.error(f'Match {args.match_id} nicht gefunden.')

    if isinstance(result, InvalidTransition):
        logging.error(result.message)
        sys.exit(1)

    write_history_csv(store.all_rounds(), args.history)
    _log_effects(result.effects)


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    if args.command == 'generate':
        run_generate(args, parser)
    elif args.command == 'advance':
        run_advance(args, parser)


if __name__ == '__main__':
    main()
