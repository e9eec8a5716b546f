"""Scoring-time views for the idol bot."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from .schemas import Game, PitchingStats, Player, Position, Team
from .team_pair import TeamPosition

if TYPE_CHECKING:
    from .state import Snapshot


@dataclass(frozen=True)
class PitcherRef:
    """A pitcher joined with their stats, game and both teams.

    Only lives for one scoring pass.
    """
    id: str
    position: Position
    player: Player
    stats: Optional[PitchingStats]
    game: Game
    snapshot: 'Snapshot'
    team: Team
    opponent: Team
    team_pos: TeamPosition


@dataclass(frozen=True)
class ScoredPitcher:
    """A candidate and the score an algorithm gave it."""
    pitcher: PitcherRef
    score: float
