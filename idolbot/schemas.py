"""Pydantic schemas for feed payloads, upstream datasets and local JSON files."""

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel


class UpstreamModel(BaseModel):
    """Base for documents served by the league APIs.

    Field names are snake_case in Python and camelCase on the wire. Unknown
    fields are ignored, and instances are frozen so a snapshot can be shared
    between scoring passes.
    """

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = 'ignore'
        frozen = True


class LeaderboardModel(UpstreamModel):
    """Stats-site documents already use snake_case and send numbers as strings."""

    class Config:
        alias_generator = None
        populate_by_name = True
        extra = 'ignore'
        frozen = True


class PitchingStats(LeaderboardModel):
    """Season pitching line for one player."""

    player_id: str
    k_per_9: float
    games: int = 0


class StrikeoutLeader(LeaderboardModel):
    """Season batting strikeouts for one player."""

    player_id: str
    strikeouts: int


class AtBatLeader(LeaderboardModel):
    """Season at-bats for one player."""

    player_id: str
    at_bats: int


class Player(UpstreamModel):
    """Player attribute bundle."""

    id: str
    name: str
    ruthlessness: float = 0.0
    patheticism: float = 0.0
    pitching_rating: float = 0.0
    hitting_rating: float = 0.0


class Position(UpstreamModel):
    """A player and the team they currently play for ('' for free agents)."""

    id: str
    team_id: str = ''
    data: Player

    @field_validator('team_id', mode='before')
    @classmethod
    def blank_when_null(cls, v):
        """Free agents come through with a null team."""
        return '' if v is None else v


class Game(UpstreamModel):
    """One scheduled or in-progress game."""

    id: str
    away_pitcher: str | None = None
    away_pitcher_name: str | None = None
    home_pitcher: str | None = None
    home_pitcher_name: str | None = None
    away_team: str
    away_team_name: str = ''
    home_team: str
    home_team_name: str = ''
    away_odds: float = 0.5
    home_odds: float = 0.5
    inning: int = -1
    season: int = 0
    day: int = 0


class Simulation(UpstreamModel):
    """Where the league is in its lifecycle."""

    season: int
    day: int
    phase: int


class Games(UpstreamModel):
    """The ``games`` section of a stream event."""

    sim: Simulation
    schedule: list[Game] = Field(default_factory=list)
    tomorrow_schedule: list[Game] = Field(default_factory=list)


class EventValue(UpstreamModel):
    games: Games


class Event(UpstreamModel):
    """One message from the event stream."""

    value: EventValue

    @property
    def sim(self) -> Simulation:
        return self.value.games.sim


class Team(UpstreamModel):
    """A team and its roster."""

    id: str
    full_name: str
    lineup: list[str] = Field(default_factory=list)
    rotation: list[str] = Field(default_factory=list)
    bullpen: list[str] = Field(default_factory=list)
    bench: list[str] = Field(default_factory=list)
    perm_attr: list[str] = Field(default_factory=list)


class Idol(UpstreamModel):
    player_id: str


class GameUpdate(UpstreamModel):
    """A historical game record, used for rare league-wide events."""

    data: Game


class Positions(UpstreamModel):
    data: list[Position]


class Idols(UpstreamModel):
    idols: list[Idol]


class GameUpdates(UpstreamModel):
    next_page: str | None = None
    data: list[GameUpdate]


class SnapshotFile(BaseModel):
    """A saved snapshot, for offline scoring."""

    season: int
    games: list[Game]
    teams: list[Team]
    players: list[Position]
    pitcher_stats: list[PitchingStats] = Field(default_factory=list)
    strikeouts: list[StrikeoutLeader] = Field(default_factory=list)
    at_bats: list[AtBatLeader] = Field(default_factory=list)
    idols: list[Idol] = Field(default_factory=list)
    special_events: list[GameUpdate] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


class StrikeoutOutcomesFile(BaseModel):
    """Strikeouts each pitcher recorded, keyed by day then player ID."""

    days: dict[int, dict[str, int]]

    class Config:
        extra = 'forbid'


class Subscriber(BaseModel):
    """A webhook destination and, optionally, the algorithms it asked for."""

    url: str = Field(..., min_length=1)
    algorithms: list[str] | None = None

    @field_validator('url')
    @classmethod
    def validate_url(cls, v):
        """Webhook URLs must be absolute HTTP(S) URLs."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f'Invalid webhook URL: {v}')
        return v

    class Config:
        extra = 'forbid'


class SubscribersFile(BaseModel):
    """Complete subscribers.json file structure."""

    subscribers: list[Subscriber] = Field(default_factory=list)

    class Config:
        extra = 'forbid'


class BotConfig(BaseModel):
    """Bot configuration settings."""

    stream_url: str = 'https://www.blaseball.com/events/streamData'
    subscribers_path: str = 'data/subscribers.json'
    avatar_url: str = 'http://hs.hiveswap.com/ezodiac/images/aspect_7.png'
    request_timeout: float = Field(30.0, gt=0)
    stream_read_timeout: float = Field(120.0, gt=0)
    failure_cooldown: float = Field(5.0, ge=0)
    short_lived_cooldown: float = Field(30.0, ge=0)
    medium_lived_cooldown: float = Field(5.0, ge=0)
    short_lived_threshold: float = Field(30.0, ge=0)
    long_lived_threshold: float = Field(45.0, ge=0)
    regular_season_phase: int = 2
    postseason_phases: list[int] = Field(default_factory=lambda: [3, 4, 5])
    max_delivery_workers: int = Field(8, ge=1, le=64)

    @field_validator('long_lived_threshold')
    @classmethod
    def validate_thresholds(cls, v, info):
        """The long-lived threshold cannot be below the short-lived one."""
        short = info.data.get('short_lived_threshold')
        if short is not None and v < short:
            raise ValueError(f'long_lived_threshold ({v}) is below short_lived_threshold ({short})')
        return v

    class Config:
        extra = 'forbid'
