"""Shared fixtures and fakes for the idol bot tests."""

import json

import pytest
import requests

from idolbot.schemas import (
    AtBatLeader,
    Event,
    Game,
    Idol,
    PitchingStats,
    Player,
    Position,
    StrikeoutLeader,
    Team,
)
from idolbot.state import Snapshot


def make_team(team_id, name=None, lineup=()):
    return Team(id=team_id, full_name=name or f'Team {team_id}', lineup=list(lineup))


def make_position(player_id, name=None, team_id='', **attrs):
    player = Player(id=player_id, name=name or f'Pitcher {player_id}', **attrs)
    return Position(id=player_id, team_id=team_id, data=player)


def make_game(game_id, home_team, away_team, home_pitcher=None, away_pitcher=None):
    return Game(
        id=game_id,
        home_team=home_team,
        away_team=away_team,
        home_pitcher=home_pitcher,
        away_pitcher=away_pitcher,
    )


def make_stats(player_id, k_per_9):
    return PitchingStats(player_id=player_id, k_per_9=k_per_9)


def make_event(phase=2, day=10, season=11, schedule=(), tomorrow=()):
    return Event(
        value={
            'games': {
                'sim': {'season': season, 'day': day, 'phase': phase},
                'schedule': list(schedule),
                'tomorrowSchedule': list(tomorrow),
            }
        }
    )


def event_json(phase=2, day=10, season=11):
    return json.dumps({
        'value': {
            'games': {
                'sim': {'season': season, 'day': day, 'phase': phase},
                'schedule': [],
                'tomorrowSchedule': [],
            }
        }
    })


@pytest.fixture
def teams():
    return [
        make_team('t1', 'Hades Tigers', lineup=['b1', 'b2']),
        make_team('t2', 'Boston Flowers', lineup=['b3']),
        make_team('t3', 'Mexico City Wild Wings', lineup=['b4', 'b5']),
        make_team('t4', 'Seattle Garages', lineup=['b6']),
    ]


@pytest.fixture
def players():
    return [
        make_position('p1', 'Jaylen Hotdogfingers', 't1', ruthlessness=0.9),
        make_position('p2', 'Yazmin Mason', 't3', ruthlessness=0.7),
        make_position('p3', 'Sixpack Dogwalker', 't4', ruthlessness=0.4),
        make_position('p4', 'Chorby Soul', 't2', ruthlessness=0.3),
    ]


@pytest.fixture
def games():
    """GameA: p1 (t1) hosts p4 (t2). GameB: p2 (t3) hosts p3 (t4)."""
    return [
        make_game('gameA', 't1', 't2', home_pitcher='p1', away_pitcher='p4'),
        make_game('gameB', 't3', 't4', home_pitcher='p2', away_pitcher='p3'),
    ]


@pytest.fixture
def snapshot(games, teams, players):
    return Snapshot.build(
        games=games,
        teams=teams,
        players=players,
        season=11,
        pitcher_stats=[
            make_stats('p1', 5.0),
            make_stats('p2', 8.0),
            make_stats('p3', 3.0),
            make_stats('p4', 2.0),
        ],
        strikeouts=[
            StrikeoutLeader(player_id='b1', strikeouts=20),
            StrikeoutLeader(player_id='b2', strikeouts=30),
            StrikeoutLeader(player_id='b3', strikeouts=10),
            StrikeoutLeader(player_id='b4', strikeouts=40),
            StrikeoutLeader(player_id='b5', strikeouts=60),
            StrikeoutLeader(player_id='b6', strikeouts=25),
        ],
        at_bats=[
            AtBatLeader(player_id='b1', at_bats=100),
            AtBatLeader(player_id='b2', at_bats=100),
            AtBatLeader(player_id='b3', at_bats=100),
            AtBatLeader(player_id='b4', at_bats=100),
            AtBatLeader(player_id='b5', at_bats=100),
            AtBatLeader(player_id='b6', at_bats=100),
        ],
        idols=[Idol(player_id='p3'), Idol(player_id='p1')],
    )


class FakeSource:
    """Snapshot source that hands out scripted snapshots or errors."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def fetch(self, games, season):
        self.calls.append((list(games), season))
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeStreamResponse:
    """Streaming response whose body is scripted SSE lines, then optionally a failure."""

    def __init__(self, lines=(), status_code=200, error=None, clock=None, open_for=0.0):
        self.lines = list(lines)
        self.clock = clock
        self.open_for = open_for
        self.status_code = status_code
        self.error = error
        self.closed = False

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f'{self.status_code} Error')

    def iter_content(self, chunk_size=None):
        for line in self.lines:
            yield (line + '\n').encode('utf-8')
        if self.clock is not None:
            self.clock.now += self.open_for
        if self.error is not None:
            raise self.error

    def close(self):
        self.closed = True


class FakeStreamSession:
    """Session whose ``get`` returns (or raises) the next scripted item."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def get(self, url, **kwargs):
        self.requests.append((url, kwargs))
        if not self.responses:
            raise AssertionError('No more scripted responses')
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class FakeClock:
    """Monotonic clock that only moves when told to, or when slept on."""

    def __init__(self, now=0.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def sse_message(data):
    """SSE lines for one message frame."""
    return [f'data: {data}', '']


class ChunkedBody:
    """Raw body for a real ``requests.Response`` that arrives in fixed chunks."""

    def __init__(self, *chunks):
        self.chunks = list(chunks)
        self.closed = False

    def read(self, size=None, **kwargs):
        return self.chunks.pop(0) if self.chunks else b''

    def close(self):
        self.closed = True


def real_response(*chunks):
    """A ``requests.Response`` streaming the given byte chunks."""
    response = requests.Response()
    response.status_code = 200
    response.raw = ChunkedBody(*chunks)
    return response
