"""Saving snapshots to disk, scoring them offline and backtesting the picks."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping, Optional

from .algorithms import ALGORITHMS, JOKE_ALGORITHMS
from .dispatch import build_results
from .errors import ScoringError
from .schemas import SnapshotFile, StrikeoutOutcomesFile
from .scoring import Algorithm
from .state import Snapshot
from .utils import load_json, save_json

logger = logging.getLogger('idolbot.replay')


def snapshot_to_file(snapshot: Snapshot) -> SnapshotFile:
    return SnapshotFile(
        season=snapshot.season,
        games=list(snapshot.games),
        teams=list(snapshot.teams),
        players=list(snapshot.players),
        pitcher_stats=list(snapshot.pitcher_stats),
        strikeouts=list(snapshot.strikeouts),
        at_bats=list(snapshot.at_bats),
        idols=list(snapshot.idols),
        special_events=list(snapshot.special_events),
    )


def save_snapshot(path: Path | str, snapshot: Snapshot) -> None:
    """Write a snapshot as JSON."""
    save_json(path, snapshot_to_file(snapshot))
    logger.info(f'Saved snapshot for season {snapshot.season} to {path}')


def load_snapshot(path: Path | str) -> Snapshot:
    """
    Read a snapshot written by ``save_snapshot``.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is not a valid snapshot
    """
    data = load_json(path, schema=SnapshotFile)
    return Snapshot.build(**{name: getattr(data, name) for name in SnapshotFile.model_fields})


def score_snapshot(snapshot: Snapshot, algorithms: Optional[Iterable[Algorithm]] = None) -> list[str]:
    """
    Render the result line of each algorithm, skipping those that fail.

    Args:
        snapshot: Snapshot to score
        algorithms: Algorithms to run (default: serious, then joke algorithms)

    Returns:
        Result lines in algorithm order
    """
    if algorithms is None:
        algorithms = ALGORITHMS + JOKE_ALGORITHMS
    algorithms = list(algorithms)
    results = build_results(snapshot, algorithms)
    return [results[a.id] for a in algorithms if a.id in results]


SNAPSHOT_NAME = re.compile(r'day_(\d+)\.json')
OUTCOMES_NAME = 'strikeouts.json'


@dataclass(frozen=True)
class BacktestSummary:
    """Strikeouts recorded by one algorithm's picks, one entry per scored day."""

    algorithm: str
    strikeouts: tuple[int, ...]

    @property
    def mean(self) -> float:
        return sum(self.strikeouts) / len(self.strikeouts)

    @property
    def worst(self) -> int:
        return min(self.strikeouts)

    @property
    def best(self) -> int:
        return max(self.strikeouts)

    @property
    def median(self) -> int:
        """Upper median: the middle of an even-length list rounds up."""
        return sorted(self.strikeouts)[len(self.strikeouts) // 2]

    def lines(self) -> list[str]:
        lines = [f'--- {self.algorithm} ---', f'strikeouts: {list(self.strikeouts)}']
        if not self.strikeouts:
            return lines + ['no scored days']
        return lines + [
            f'mean: {self.mean:g}',
            f'worst: {self.worst}',
            f'best: {self.best}',
            f'median: {self.median}',
        ]


def backtest(
    snapshots: Mapping[int, Snapshot],
    outcomes: Mapping[int, Mapping[str, int]],
    algorithms: Iterable[Algorithm] = ALGORITHMS,
) -> list[BacktestSummary]:
    """
    Score past days and collect how many strikeouts each pick recorded.

    A day counts for an algorithm only when it made a pick and the pick has
    a recorded outcome for that day.

    Args:
        snapshots: Snapshot per day, as it stood before the day's games
        outcomes: Strikeouts per pitcher ID, per day
        algorithms: Algorithms to evaluate (default: the serious ones)

    Returns:
        One summary per algorithm, in algorithm order
    """
    algorithms = list(algorithms)
    strikeouts: dict[str, list[int]] = {a.id: [] for a in algorithms}
    for day in sorted(snapshots):
        recorded = outcomes.get(day)
        if recorded is None:
            logger.debug(f'No outcomes for day {day}, skipping')
            continue
        for algorithm in algorithms:
            try:
                pick = algorithm.best_pitcher(snapshots[day]).pitcher
            except ScoringError as e:
                logger.warning(f'Day {day}: no pick for {algorithm.name}: {e}')
                continue
            if pick.player.id not in recorded:
                logger.debug(f'Day {day}: no outcome for {pick.player.name}')
                continue
            strikeouts[algorithm.id].append(recorded[pick.player.id])
    return [BacktestSummary(a.name, tuple(strikeouts[a.id])) for a in algorithms]


def load_backtest(directory: Path | str) -> tuple[dict[int, Snapshot], dict[int, dict[str, int]]]:
    """
    Read ``day_<N>.json`` snapshots and ``strikeouts.json`` outcomes from a directory.

    Raises:
        FileNotFoundError: If the outcomes file doesn't exist
        ValueError: If a file is not valid
    """
    directory = Path(directory)
    snapshots = {}
    for path in sorted(directory.iterdir()):
        match = SNAPSHOT_NAME.fullmatch(path.name)
        if match:
            snapshots[int(match.group(1))] = load_snapshot(path)
    outcomes = load_json(directory / OUTCOMES_NAME, schema=StrikeoutOutcomesFile)
    logger.info(f'Loaded {len(snapshots)} days from {directory}')
    return snapshots, outcomes.days
