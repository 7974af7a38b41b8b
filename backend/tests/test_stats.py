import pytest

from tabletimer.services.sessions import stats, turns
from tabletimer.services.sessions.store import SessionStore


@pytest.mark.parametrize('seconds,expected', [
    (0, '0:00'),
    (59, '0:59'),
    (61, '1:01'),
    (3599, '59:59'),
    (3600, '1:00:00'),
    (3725, '1:02:05'),
])
def test_format_time(seconds, expected):
    assert stats.format_time(seconds) == expected


def _session():
    s = SessionStore().create('sequential', 'shared', ['Ann', 'Ben', 'Cat'])
    s.players[0].time = 30
    s.players[1].time = 90
    return s


def test_stream_view_projection():
    s = _session()
    turns.toggle(s, 0)
    view = stats.stream_view(s)
    assert view['mode'] == 'sequential'
    assert view['globalTime'] == 120
    assert view['globalTimeFormatted'] == '2:00'
    assert view['currentPlayer'] == 'Ann'
    assert [p['isActive'] for p in view['players']] == [True, False, False]
    assert [p['percentageOfTotal'] for p in view['players']] == [25, 75, 0]


def test_stream_view_has_no_current_player_in_independent_mode():
    s = SessionStore().create('independent', 'shared', ['A', 'B'])
    assert stats.stream_view(s)['currentPlayer'] is None


def test_party_stats_ranking_and_average():
    s = _session()
    data = stats.party_stats(s, 'ABCDEF', now=s.created_at + 42)
    assert data['averageTime'] == 60
    assert data['duration'] == 42
    assert [r['name'] for r in data['ranking']] == ['Ben', 'Ann', 'Cat']
    assert [p['rank'] for p in data['players']] == [2, 1, 3]
    assert data['currentPlayerName'] == 'Ann'
    assert data['joinCode'] == 'ABCDEF'


def test_player_stats():
    s = _session()
    data = stats.player_stats(s, 1)
    assert data['rank'] == 1
    assert data['percentageOfTotal'] == 75
    assert data['isCurrent'] is False
    assert stats.player_stats(s, 0)['isCurrent'] is True
    assert stats.player_stats(s, 5) is None
