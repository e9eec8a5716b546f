"""Home/away pairs.

Every game has exactly two sides. ``TeamPair`` holds one value per side and
offers the combinators the scoring engine uses to look both sides up at once
and to build "self vs. opponent" views symmetrically.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

T = TypeVar('T')
U = TypeVar('U')
M = TypeVar('M')


class TeamPosition(Enum):
    """Which side of a game a value belongs to."""

    HOME = 'home'
    AWAY = 'away'

    @property
    def other(self) -> 'TeamPosition':
        return TeamPosition.AWAY if self is TeamPosition.HOME else TeamPosition.HOME


@dataclass(frozen=True)
class TeamPair(Generic[T]):
    """Exactly two values, tagged home and away.

    Iteration order is always home, then away.
    """

    home: T
    away: T

    def __iter__(self) -> Iterator[T]:
        yield self.home
        yield self.away

    def __len__(self) -> int:
        return 2

    def get(self, position: TeamPosition) -> T:
        """Return the value on the given side."""
        return self.home if position is TeamPosition.HOME else self.away

    def items(self) -> Iterator[tuple[TeamPosition, T]]:
        """Iterate ``(position, value)`` pairs, home first."""
        yield TeamPosition.HOME, self.home
        yield TeamPosition.AWAY, self.away

    def map(self, func: Callable[[T], M]) -> 'TeamPair[M]':
        """Apply ``func`` to both sides independently."""
        return TeamPair(home=func(self.home), away=func(self.away))

    def map_pos(self, func: Callable[[T, TeamPosition], M]) -> 'TeamPair[M]':
        """Like ``map`` but ``func`` also receives the side."""
        return TeamPair(
            home=func(self.home, TeamPosition.HOME),
            away=func(self.away, TeamPosition.AWAY),
        )

    def map_with_position(self, func: Callable[[T, T, TeamPosition], M]) -> 'TeamPair[M]':
        """Apply ``func(own, other, position)`` to both sides.

        Each call sees its own value, the opposite side's value and which side
        it is, so pitcher-vs-opponent views come out of a single pass.
        """
        return TeamPair(
            home=func(self.home, self.away, TeamPosition.HOME),
            away=func(self.away, self.home, TeamPosition.AWAY),
        )

    def zip(self, other: 'TeamPair[U]') -> 'TeamPair[tuple[T, U]]':
        """Combine two pairs slot-wise."""
        return TeamPair(home=(self.home, other.home), away=(self.away, other.away))

    def and_then(self, func: Callable[[T], Optional[M]]) -> 'Optional[TeamPair[M]]':
        """Map both sides and transpose the result.

        Returns ``None`` unless ``func`` produced a value for both sides. If
        ``func`` raises, the exception propagates from the first side that
        raised (home is evaluated first), so exceptions play the part of a
        failed result.
        """
        return self.map(func).transpose()

    def transpose(self: 'TeamPair[Optional[Any]]') -> 'Optional[TeamPair[Any]]':
        """Turn a pair of optionals into an optional pair.

        Partial data is discarded: one missing side makes the whole pair
        ``None``.
        """
        if self.home is None or self.away is None:
            return None
        return TeamPair(home=self.home, away=self.away)
