"""Diagnostics for snapshots: why games or pitchers drop out of scoring."""

from .schemas import Game
from .state import Snapshot


def validate_game(game: Game, snapshot: Snapshot) -> list[str]:
    """
    Explain why a game would be skipped, or which pitchers lack stats.

    Checks:
    - Both teams are known
    - Both sides have a pitcher assigned
    - Both pitchers are known players
    - Both pitchers have season stats

    Args:
        game: Game to check
        snapshot: Snapshot the game belongs to

    Returns:
        List of problem descriptions (empty if the game scores cleanly)
    """
    problems = []
    label = f'{game.away_team_name or game.away_team} @ {game.home_team_name or game.home_team}'

    for side, team_id in (('home', game.home_team), ('away', game.away_team)):
        if snapshot.team(team_id) is None:
            problems.append(f'{label}: unknown {side} team {team_id}')

    for side, pitcher_id in (('home', game.home_pitcher), ('away', game.away_pitcher)):
        if not pitcher_id:
            problems.append(f'{label}: no {side} pitcher')
            continue
        if snapshot.player(pitcher_id) is None:
            problems.append(f'{label}: unknown {side} pitcher {pitcher_id}')
        if snapshot.stats(pitcher_id) is None:
            # Only stat-based algorithms skip this pitcher
            problems.append(f'{label}: no stats for {side} pitcher {pitcher_id}')

    return problems


def validate_snapshot(snapshot: Snapshot) -> list[str]:
    """Problems for every game in the snapshot. Never raises."""
    problems = []
    for game in snapshot.games:
        problems.extend(validate_game(game, snapshot))
    if not snapshot.pitcher_stats:
        problems.append(f'No pitching stats for season {snapshot.season}')
    return problems
