"""Tests for the rotate.py command line."""

from datetime import timedelta

import pytest

import rotate
from rotation import MatchStatus
from rotation.reader import read_history
from rotation.reporter import write_history_csv
from rotation.rounds import build_round, utcnow


@pytest.fixture
def roster_seven(tmp_path):
    path = tmp_path / 'roster.csv'
    lines = ['Member ID\tName\tWhatsApp\tActive\tRole']
    lines += [f'm{i}\tMember {i}\t\t1\tuser' for i in range(1, 8)]
    path.write_text('\n'.join(lines) + '\n', encoding='utf-8')
    return path


class TestGenerate:
    """rotate.py generate"""

    def test_writes_report_and_history(self, tmp_path, roster_seven, capsys):
        out = tmp_path / 'round.csv'
        history = tmp_path / 'history.csv'
        rotate.main([
            'generate', '--roster', str(roster_seven), '--club-id', 'c1',
            '--seed', '5', '--history', str(history), '--output', str(out),
            '--html', '--summary',
        ])
        assert out.exists()
        assert out.with_suffix('.html').exists()
        rounds = read_history(history)
        assert len(rounds) == 1
        assert rounds[0].members == {f'm{i}' for i in range(1, 8)}
        assert 'Gruppen gesamt' in capsys.readouterr().out

    def test_not_due_without_force(self, tmp_path, roster_seven):
        history = tmp_path / 'history.csv'
        write_history_csv([build_round('c1', [('m1', 'm2')], now=utcnow())], history)
        rotate.main([
            'generate', '--roster', str(roster_seven), '--club-id', 'c1',
            '--history', str(history),
        ])
        assert len(read_history(history)) == 1

    def test_force_appends(self, tmp_path, roster_seven):
        history = tmp_path / 'history.csv'
        write_history_csv([build_round('c1', [('m1', 'm2')], now=utcnow())], history)
        rotate.main([
            'generate', '--roster', str(roster_seven), '--club-id', 'c1',
            '--history', str(history), '--force',
        ])
        assert len(read_history(history)) == 2

    def test_invalid_group_size_exits(self, roster_seven):
        with pytest.raises(SystemExit) as exc:
            rotate.main([
                'generate', '--roster', str(roster_seven), '--club-id', 'c1',
                '--group-size', '5',
            ])
        assert exc.value.code == 2


class TestAdvance:
    """rotate.py advance"""

    def _history(self, tmp_path):
        path = tmp_path / 'history.csv'
        rnd = build_round('c1', [('m1', 'm2'), ('m3', 'm4')], now=utcnow() - timedelta(days=1))
        write_history_csv([rnd], path)
        return path, rnd

    def test_schedule(self, tmp_path):
        path, rnd = self._history(tmp_path)
        date = (utcnow() + timedelta(days=3)).isoformat()
        rotate.main([
            'advance', '--history', str(path), '--match-id', rnd.matches[0].id,
            '--status', 'scheduled', '--date', date,
        ])
        match = read_history(path)[0].matches[0]
        assert match.status is MatchStatus.SCHEDULED
        assert match.scheduled_date is not None

    def test_invalid_transition_exits(self, tmp_path):
        path, rnd = self._history(tmp_path)
        with pytest.raises(SystemExit) as exc:
            rotate.main([
                'advance', '--history', str(path), '--match-id', rnd.matches[0].id,
                '--status', 'completed',
            ])
        assert exc.value.code == 1
        assert read_history(path)[0].matches[0].status is MatchStatus.PENDING

    def test_unknown_match_exits(self, tmp_path):
        path, _ = self._history(tmp_path)
        with pytest.raises(SystemExit):
            rotate.main([
                'advance', '--history', str(path), '--match-id', 'nope',
                '--status', 'skipped',
            ])
