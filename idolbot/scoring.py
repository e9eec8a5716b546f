"""Algorithm scoring engine.

An ``Algorithm`` pairs a display descriptor with one of two strategy kinds:

- ``Maximize``: a per-pitcher formula. The engine assembles a ``PitcherRef``
  for both sides of every game, scores each one and keeps the best.
- ``Custom``: a heuristic that does its own scan of the snapshot and hands
  back a single ``ScoredPitcher``.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

from .errors import NoCandidateError
from .formatter import Forbidden, PrintedStat, display
from .models import PitcherRef, ScoredPitcher
from .schemas import Game
from .state import Snapshot
from .team_pair import TeamPair

logger = logging.getLogger('idolbot.scoring')

ScoreFn = Callable[[PitcherRef], Optional[float]]


def pitchers_for_game(game: Game, snapshot: Snapshot) -> Optional[TeamPair[PitcherRef]]:
    """
    Assemble the pitcher view for both sides of a game.

    Both teams and both pitchers must resolve; otherwise the game is skipped
    (None). Stats are joined per side and may be missing on either side.
    """
    teams = snapshot.teams_for(game)
    if teams is None:
        return None
    positions = snapshot.players_for(game)
    if positions is None:
        return None
    stats = snapshot.stats_for(game)

    return positions.zip(stats).zip(teams).map_with_position(
        lambda own, other, team_pos: PitcherRef(
            id=own[0][0].id,
            position=own[0][0],
            player=own[0][0].data,
            stats=own[0][1],
            game=game,
            snapshot=snapshot,
            team=own[1],
            opponent=other[1],
            team_pos=team_pos,
        )
    )


def iter_pitchers(snapshot: Snapshot) -> Iterator[PitcherRef]:
    """Every assemblable pitcher in the snapshot, game by game, home first."""
    for game in snapshot.games:
        pair = pitchers_for_game(game, snapshot)
        if pair is None:
            logger.debug(f'Skipping game {game.id}: teams or pitchers unresolved')
            continue
        yield from pair


def best_pitcher(snapshot: Snapshot, strategy: ScoreFn) -> ScoredPitcher:
    """
    Score every pitcher and return the highest-scoring one.

    A formula returning None has no opinion on that pitcher. NaN scores never
    win, and on ties the first candidate found is kept.

    Raises:
        NoCandidateError: If no pitcher received a score
    """
    best: Optional[ScoredPitcher] = None
    for pitcher in iter_pitchers(snapshot):
        score = strategy(pitcher)
        if score is None or math.isnan(score):
            continue
        if best is None or score > best.score:
            best = ScoredPitcher(pitcher=pitcher, score=score)

    if best is None:
        raise NoCandidateError('No best pitcher!')
    return best


class Strategy(ABC):
    """How an algorithm picks its candidate."""

    @abstractmethod
    def select(self, snapshot: Snapshot) -> ScoredPitcher:
        ...


@dataclass(frozen=True)
class Maximize(Strategy):
    """Pick the pitcher with the highest per-pitcher score."""

    score: ScoreFn

    def select(self, snapshot: Snapshot) -> ScoredPitcher:
        return best_pitcher(snapshot, self.score)


@dataclass(frozen=True)
class Custom(Strategy):
    """Delegate the whole selection to a named heuristic."""

    selector: Callable[[Snapshot], ScoredPitcher]

    def select(self, snapshot: Snapshot) -> ScoredPitcher:
        return self.selector(snapshot)


@dataclass(frozen=True)
class Algorithm:
    """A named, stateless selection heuristic."""

    id: str
    name: str
    forbidden: Forbidden
    printed_stats: tuple[PrintedStat, ...]
    strategy: Strategy

    def best_pitcher(self, snapshot: Snapshot) -> ScoredPitcher:
        return self.strategy.select(snapshot)

    def display(self, scored: ScoredPitcher) -> str:
        return display(scored, self.name, self.forbidden, self.printed_stats)

    def best_line(self, snapshot: Snapshot) -> str:
        """Select and render in one step.

        Raises:
            ScoringError: If the algorithm found no candidate
        """
        return self.display(self.best_pitcher(snapshot))
