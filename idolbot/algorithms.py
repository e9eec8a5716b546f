"""The serious and joke algorithms.

Per-pitcher formulas return a score or None ("no opinion" about that
pitcher). Bestness and Best Best are custom scans over the whole roster.
"""

import math
from statistics import fmean
from typing import Callable, Optional

from .errors import NoCandidateError, ScoringError
from .formatter import Forbidden, PrintedStat
from .models import PitcherRef, ScoredPitcher
from .schemas import Game, Position, Team
from .scoring import Algorithm, Custom, Maximize
from .state import Snapshot
from .team_pair import TeamPosition

FRIDAYS_ID = '979aee4a-6d80-4863-bf1c-ee1a78e06024'

# Stand-ins for a Best player whose team is not on the schedule
NO_OPPONENT = Team(id='', full_name='Nobody')
NO_GAME_ID = 'unscheduled'


def best_by(algorithm_id: str, label: str, score: Callable[[PitcherRef], Optional[float]],
            printed_stats: tuple[PrintedStat, ...] = (),
            forbidden: Forbidden = Forbidden.UNFORBIDDEN) -> Algorithm:
    """Declare a per-pitcher algorithm named "Best by <label>"."""
    return Algorithm(
        id=algorithm_id,
        name=f'Best by {label}',
        forbidden=forbidden,
        printed_stats=printed_stats,
        strategy=Maximize(score),
    )


def opponent_strikeout_rate(pitcher: PitcherRef) -> Optional[float]:
    """
    Mean SO/AB over the opposing lineup.

    Every batter in the lineup needs both a strikeout and an at-bat total
    (with at least one at-bat), otherwise there is no rate.
    """
    snapshot = pitcher.snapshot
    strikeouts = snapshot.lineup_strikeouts(pitcher.opponent)
    at_bats = snapshot.lineup_at_bats(pitcher.opponent)
    rates = []
    for so, ab in zip(strikeouts, at_bats):
        if so is None or not ab:
            return None
        rates.append(so / ab)
    if not rates:
        return None
    return fmean(rates)


def score_so9(x: PitcherRef) -> Optional[float]:
    if x.stats is None:
        return None
    return x.stats.k_per_9


def score_ruthlessness(x: PitcherRef) -> Optional[float]:
    return x.player.ruthlessness


def score_stat_ratio(x: PitcherRef) -> Optional[float]:
    if x.stats is None:
        return None
    rate = opponent_strikeout_rate(x)
    if rate is None:
        return None
    return x.stats.k_per_9 * (0.2 + rate)


def score_worst_stat_ratio(x: PitcherRef) -> Optional[float]:
    if x.stats is None:
        return None
    rate = opponent_strikeout_rate(x)
    if not rate:
        return None
    return -x.stats.k_per_9 / rate


def score_fridays(x: PitcherRef) -> Optional[float]:
    return 1.0 if x.opponent.id == FRIDAYS_ID else 0.0


def score_idols(x: PitcherRef) -> Optional[float]:
    rank = x.snapshot.idol_rank(x.player.id)
    return -float(20 if rank is None else rank) - 1.0


def stars(rating: float) -> float:
    """Star rating shown on the site: half-star steps. NaN for a non-finite rating."""
    if not math.isfinite(rating):
        return math.nan
    return math.floor(rating * 10.0) / 2.0


def score_batting_stars(x: PitcherRef) -> Optional[float]:
    return stars(x.player.hitting_rating)


def name_length(name: str) -> int:
    """Names are measured in UTF-8 bytes."""
    return len(name.encode('utf-8'))


def score_name_length(x: PitcherRef) -> Optional[float]:
    return float(name_length(x.player.name))


def best_named_best(snapshot: Snapshot, score: Callable[[Position], float]) -> ScoredPitcher:
    """
    Find the highest-scoring player with "Best" in their name and place them
    in their team's game.

    If their team has no game on the schedule, a placeholder game against
    ``NO_OPPONENT`` is used instead of failing.

    Raises:
        NoCandidateError: If no player has "Best" in their name
        ScoringError: If their game is scheduled but its teams are unknown
    """
    best: Optional[tuple[Position, float]] = None
    for position in snapshot.players:
        if 'Best' not in position.data.name:
            continue
        value = score(position)
        if math.isnan(value):
            continue
        if best is None or value > best[1]:
            best = (position, value)
    if best is None:
        raise NoCandidateError('No Best player!')
    position, value = best

    game = next(
        (g for g in snapshot.games if position.team_id in (g.home_team, g.away_team)),
        None,
    )
    if game is None:
        team = snapshot.team(position.team_id) or Team(id=position.team_id, full_name='Unknown Team')
        team_pos = TeamPosition.HOME
        opponent = NO_OPPONENT
        game = Game(
            id=NO_GAME_ID,
            home_team=team.id,
            home_team_name=team.full_name,
            away_team=opponent.id,
            away_team_name=opponent.full_name,
            season=snapshot.season,
        )
    else:
        teams = snapshot.teams_for(game)
        if teams is None:
            raise ScoringError("Couldn't get teams!")
        if teams.away.id == position.team_id:
            team_pos = TeamPosition.AWAY
        else:
            team_pos = TeamPosition.HOME
        team = teams.get(team_pos)
        opponent = teams.get(team_pos.other)

    pitcher = PitcherRef(
        id=position.data.id,
        position=position,
        player=position.data,
        stats=None,
        game=game,
        snapshot=snapshot,
        team=team,
        opponent=opponent,
        team_pos=team_pos,
    )
    return ScoredPitcher(pitcher=pitcher, score=value)


def select_bestness(snapshot: Snapshot) -> ScoredPitcher:
    """Shorter names are more Best."""
    return best_named_best(snapshot, lambda p: 4.0 / name_length(p.data.name))


def select_best_best(snapshot: Snapshot) -> ScoredPitcher:
    return best_named_best(snapshot, lambda p: stars(p.data.pitching_rating))


SO9 = best_by('so9', 'SO/9', score_so9)

RUTHLESSNESS = best_by(
    'ruthlessness', 'ruthlessness', score_ruthlessness,
    printed_stats=(PrintedStat.SO9,), forbidden=Forbidden.FORBIDDEN,
)

STAT_RATIO = best_by('stat_ratio', '(SO/9)(SO/AB)', score_stat_ratio, printed_stats=(PrintedStat.SO9,))

BESTNESS = Algorithm(
    id='bestness',
    name='Best by Bestness',
    forbidden=Forbidden.UNFORBIDDEN,
    printed_stats=(),
    strategy=Custom(select_bestness),
)

BEST_BEST = Algorithm(
    id='best_best',
    name='Best Best by Stars',
    forbidden=Forbidden.UNFORBIDDEN,
    printed_stats=(),
    strategy=Custom(select_best_best),
)

FRIDAYS = Algorithm(
    id='fridays',
    name='Against Fridays',
    forbidden=Forbidden.UNFORBIDDEN,
    printed_stats=(),
    strategy=Maximize(score_fridays),
)

WORST_STAT_RATIO = Algorithm(
    id='worst_stat_ratio',
    name='Worst by (-SO/9)/(SO/AB)',
    forbidden=Forbidden.UNFORBIDDEN,
    printed_stats=(PrintedStat.SO9,),
    strategy=Maximize(score_worst_stat_ratio),
)

IDOLS = best_by('idols', 'idolization', score_idols)

BATTING_STARS = best_by('batting_stars', 'batting stars', score_batting_stars)

NAME_LENGTH = best_by('name_length', 'name length', score_name_length)

ALGORITHMS: tuple[Algorithm, ...] = (SO9, RUTHLESSNESS, STAT_RATIO)

JOKE_ALGORITHMS: tuple[Algorithm, ...] = (
    BESTNESS,
    BEST_BEST,
    FRIDAYS,
    WORST_STAT_RATIO,
    IDOLS,
    BATTING_STARS,
    NAME_LENGTH,
)

ALGORITHMS_BY_ID = {a.id: a for a in ALGORITHMS + JOKE_ALGORITHMS}


def get_algorithm(algorithm_id: str) -> Algorithm:
    """Look an algorithm up by ID.

    Raises:
        KeyError: If no algorithm has that ID
    """
    try:
        return ALGORITHMS_BY_ID[algorithm_id]
    except KeyError:
        raise KeyError(f'Unknown algorithm: {algorithm_id}') from None
