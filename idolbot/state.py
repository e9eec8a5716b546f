"""Point-in-time league snapshot and the ID joins the scoring engine relies on."""

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .schemas import (
    AtBatLeader,
    Event,
    Game,
    GameUpdate,
    Idol,
    PitchingStats,
    Position,
    StrikeoutLeader,
    Team,
)
from .team_pair import TeamPair

logger = logging.getLogger('idolbot.state')


def pitcher_ids(game: Game) -> Optional[TeamPair[str]]:
    """Both pitcher IDs of a game, or None if either side has no pitcher yet."""
    return TeamPair(home=game.home_pitcher, away=game.away_pitcher).transpose()


def team_ids(game: Game) -> TeamPair[str]:
    return TeamPair(home=game.home_team, away=game.away_team)


@dataclass(frozen=True)
class Snapshot:
    """Everything the algorithms need, fetched once per dispatch cycle.

    Collections are tuples and the records are frozen models, so any number
    of scoring passes can read the same snapshot.
    """

    games: tuple[Game, ...]
    teams: tuple[Team, ...]
    players: tuple[Position, ...]
    season: int
    pitcher_stats: tuple[PitchingStats, ...] = ()
    strikeouts: tuple[StrikeoutLeader, ...] = ()
    at_bats: tuple[AtBatLeader, ...] = ()
    idols: tuple[Idol, ...] = ()
    special_events: tuple[GameUpdate, ...] = field(default=(), repr=False)

    @classmethod
    def build(cls, games, teams, players, season, **collections) -> 'Snapshot':
        """Build a snapshot from plain lists."""
        return cls(
            games=tuple(games),
            teams=tuple(teams),
            players=tuple(players),
            season=season,
            **{name: tuple(values) for name, values in collections.items()},
        )

    @classmethod
    def from_event(cls, event: Event, source: 'SnapshotSource') -> 'Snapshot':
        """Fetch a snapshot for the games an event announces.

        Tomorrow's schedule is what gets scored; when it is empty the games
        currently being played are used instead.
        """
        games = event.value.games.tomorrow_schedule
        if not games:
            logger.warning('No games scheduled, checking current games')
            games = event.value.games.schedule
        return source.fetch(games, event.sim.season)

    def team(self, team_id: str) -> Optional[Team]:
        return next((t for t in self.teams if t.id == team_id), None)

    def player(self, player_id: str) -> Optional[Position]:
        return next((p for p in self.players if p.id == player_id), None)

    def stats(self, player_id: str) -> Optional[PitchingStats]:
        return next((s for s in self.pitcher_stats if s.player_id == player_id), None)

    def teams_for(self, game: Game) -> Optional[TeamPair[Team]]:
        """Both teams of a game; None if either team is unknown."""
        return team_ids(game).and_then(self.team)

    def players_for(self, game: Game) -> Optional[TeamPair[Position]]:
        """Both pitchers of a game; None if either is unassigned or unknown."""
        ids = pitcher_ids(game)
        if ids is None:
            return None
        return ids.and_then(self.player)

    def stats_for(self, game: Game) -> TeamPair[Optional[PitchingStats]]:
        """Pitching stats per side.

        Unlike the other joins each side resolves on its own: a pitcher with
        no stats yet does not hide the other side's stats.
        """
        ids = TeamPair(home=game.home_pitcher, away=game.away_pitcher)
        return ids.map(lambda player_id: self.stats(player_id) if player_id else None)

    def lineup_strikeouts(self, team: Team) -> list[Optional[int]]:
        """Season strikeouts for each batter in the lineup, in lineup order."""
        by_player = {}
        for leader in self.strikeouts:
            by_player.setdefault(leader.player_id, leader.strikeouts)
        return [by_player.get(player_id) for player_id in team.lineup]

    def lineup_at_bats(self, team: Team) -> list[Optional[int]]:
        """Season at-bats for each batter in the lineup, in lineup order."""
        by_player = {}
        for leader in self.at_bats:
            by_player.setdefault(leader.player_id, leader.at_bats)
        return [by_player.get(player_id) for player_id in team.lineup]

    def idol_rank(self, player_id: str) -> Optional[int]:
        """Zero-based position on the idol board, or None if not on it."""
        return next((i for i, idol in enumerate(self.idols) if idol.player_id == player_id), None)


class SnapshotSource(Protocol):
    """Anything that can assemble a snapshot for a set of games.

    Implementations may return partially empty collections; joins then simply
    fail to match.
    """

    def fetch(self, games: list[Game], season: int) -> Snapshot:
        ...
