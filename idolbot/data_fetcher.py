"""League data fetching using requests."""

import logging
from typing import Any, Optional, TypeVar

import requests
from pydantic import TypeAdapter

from .errors import SnapshotError
from .schemas import (
    AtBatLeader,
    Game,
    GameUpdates,
    Idols,
    PitchingStats,
    Position,
    Positions,
    StrikeoutLeader,
    Team,
)
from .state import Snapshot, pitcher_ids

logger = logging.getLogger('idolbot.data_fetcher')

T = TypeVar('T')

SEASON_LEADERS_URL = 'https://api.blaseball-reference.com/v1/seasonLeaders'
PLAYER_STATS_URL = 'https://api.blaseball-reference.com/v1/playerStats'
ALL_TEAMS_URL = 'https://www.blaseball.com/database/allTeams'
PLAYERS_URL = 'https://api.sibr.dev/chronicler/v1/players'
GAME_UPDATES_URL = 'https://api.sibr.dev/chronicler/v1/games/updates'
IDOLS_URL = 'https://www.blaseball.com/api/getIdols'

SPECIAL_EVENTS_SEARCH = '"Sun 2" or "Black Hole"'


class BlaseballDataFetcher:
    """Fetches every dataset a snapshot needs.

    Leaderboards and pitching stats are optional: early in a season they can
    be empty or missing, and a failure there only leaves the snapshot with
    fewer stats. Teams, players, idols and special events are required.
    """

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = 30.0):
        self.session = session or requests.Session()
        self.timeout = timeout

    def _get(self, url: str, params: Optional[dict[str, Any]] = None) -> Any:
        response = self.session.get(url, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _required(self, what: str, schema: Any, url: str,
                  params: Optional[dict[str, Any]] = None) -> Any:
        logger.debug(f'Getting {what}')
        try:
            return TypeAdapter(schema).validate_python(self._get(url, params))
        except (requests.RequestException, ValueError) as e:
            # ValidationError and JSON decode errors are both ValueErrors
            raise SnapshotError(f'Failed to get {what}: {e}') from e

    def _optional(self, what: str, schema: type[T], url: str,
                  params: Optional[dict[str, Any]] = None) -> list[T]:
        logger.debug(f'Getting {what}')
        try:
            return TypeAdapter(list[schema]).validate_python(self._get(url, params))
        except (requests.RequestException, ValueError) as e:
            logger.warning(f'Could not get {what}, continuing without: {e}')
            return []

    def strikeout_leaders(self, season: int) -> list[StrikeoutLeader]:
        params = {'category': 'batting', 'stat': 'strikeouts', 'season': season}
        return self._optional('batter strikeouts', StrikeoutLeader, SEASON_LEADERS_URL, params)

    def at_bat_leaders(self, season: int) -> list[AtBatLeader]:
        params = {'category': 'batting', 'stat': 'at_bats', 'season': season}
        return self._optional('at-bats', AtBatLeader, SEASON_LEADERS_URL, params)

    def pitching_stats(self, games: list[Game], season: int) -> list[PitchingStats]:
        ids = [pid for game in games if (pair := pitcher_ids(game)) for pid in pair]
        if not ids:
            return []
        params = {'category': 'pitching', 'playerIds': ','.join(ids), 'season': season}
        return self._optional('pitcher stats', PitchingStats, PLAYER_STATS_URL, params)

    def teams(self) -> list[Team]:
        return self._required('teams', list[Team], ALL_TEAMS_URL)

    def players(self) -> list[Position]:
        return self._required('players', Positions, PLAYERS_URL, {'forbidden': 'false'}).data

    def idols(self):
        return self._required('idols', Idols, IDOLS_URL).idols

    def special_events(self):
        params = {'search': SPECIAL_EVENTS_SEARCH, 'count': 1000, 'order': 'desc'}
        return self._required('Sun 2 and Black Hole events', GameUpdates, GAME_UPDATES_URL, params).data

    def fetch(self, games: list[Game], season: int) -> Snapshot:
        """
        Assemble a snapshot for the given games.

        Args:
            games: Games to score (usually tomorrow's schedule)
            season: Season the leaderboards are taken from

        Returns:
            Snapshot with every collection filled in

        Raises:
            SnapshotError: If a required dataset could not be fetched
        """
        return Snapshot.build(
            games=games,
            teams=self.teams(),
            players=self.players(),
            season=season,
            pitcher_stats=self.pitching_stats(games, season),
            strikeouts=self.strikeout_leaders(season),
            at_bats=self.at_bat_leaders(season),
            idols=self.idols(),
            special_events=self.special_events(),
        )
