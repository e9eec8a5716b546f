"""Rendering of scored candidates into result lines."""

from enum import Enum

from .models import PitcherRef, ScoredPitcher
from .team_pair import TeamPosition


class Forbidden(Enum):
    """Whether a result is spoiler-wrapped when delivered."""

    FORBIDDEN = 'forbidden'
    UNFORBIDDEN = 'unforbidden'

    def forbid(self, text: str) -> str:
        """Wrap ``text`` in spoiler bars if forbidden.

        The text is still sent; readers have to click to reveal it.
        """
        if self is Forbidden.FORBIDDEN:
            return f'||{text}||'
        return text


class PrintedStat(Enum):
    """Extra stats an algorithm shows next to its score."""

    SO9 = 'so9'

    def print(self, pitcher: PitcherRef) -> str:
        if self is PrintedStat.SO9:
            if pitcher.stats is None:
                return 'SO/9: N/A'
            return f'SO/9: {pitcher.stats.k_per_9}'
        raise ValueError(f'Unknown printed stat: {self}')


VERSUS = {
    TeamPosition.HOME: 'vs.',
    TeamPosition.AWAY: '@',
}


def display(
    scored: ScoredPitcher,
    strategy: str,
    forbidden: Forbidden = Forbidden.UNFORBIDDEN,
    stats: tuple[PrintedStat, ...] = (),
) -> str:
    """
    Render one result line.

    Format: ``<strategy>: <player> (<score>, <stats>, **<team>** vs.|@ <opponent>)``,
    with "vs." for home pitchers and "@" for away pitchers.

    Args:
        scored: The winning candidate
        strategy: Algorithm display name
        forbidden: Spoiler-wrap the whole line if FORBIDDEN
        stats: Auxiliary stats to print after the score

    Returns:
        The formatted line, without a trailing newline
    """
    pitcher = scored.pitcher
    printed_stats = ''.join(f', {stat.print(pitcher)}' for stat in stats)
    text = (
        f'{strategy}: {pitcher.player.name} '
        f'({scored.score:.3f}{printed_stats}, '
        f'**{pitcher.team.full_name}** {VERSUS[pitcher.team_pos]} {pitcher.opponent.full_name})'
    )
    return forbidden.forbid(text)
