from .team_pair import TeamPair, TeamPosition
from .errors import (
    IdolBotError,
    ConfigurationError,
    StreamConnectionError,
    SnapshotError,
    ScoringError,
    NoCandidateError,
)
from .models import PitcherRef, ScoredPitcher
from .state import Snapshot, SnapshotSource
from .scoring import Algorithm, Custom, Maximize, Strategy, best_pitcher, pitchers_for_game
from .algorithms import ALGORITHMS, JOKE_ALGORITHMS, get_algorithm
from .formatter import Forbidden, PrintedStat, display
from .data_fetcher import BlaseballDataFetcher
from .events import EventStreamClient, decode_frames
from .subscribers import SubscriberRegistry
from .delivery import DeliveryStatus, WebhookSender, deliver
from .dispatch import Dispatcher, PhaseTracker, build_results, compose_message, run_loop, run_test_mode
from .replay import BacktestSummary, backtest, load_backtest, load_snapshot, save_snapshot, score_snapshot
from .validators import validate_snapshot
from .logging_config import setup_logging

__all__ = [
    # Containers and models
    'TeamPair',
    'TeamPosition',
    'PitcherRef',
    'ScoredPitcher',
    'Snapshot',
    'SnapshotSource',
    # Errors
    'IdolBotError',
    'ConfigurationError',
    'StreamConnectionError',
    'SnapshotError',
    'ScoringError',
    'NoCandidateError',
    # Scoring
    'Algorithm',
    'Custom',
    'Maximize',
    'Strategy',
    'best_pitcher',
    'pitchers_for_game',
    'ALGORITHMS',
    'JOKE_ALGORITHMS',
    'get_algorithm',
    # Formatting
    'Forbidden',
    'PrintedStat',
    'display',
    # Data fetching
    'BlaseballDataFetcher',
    # Event stream
    'EventStreamClient',
    'decode_frames',
    # Subscribers and delivery
    'SubscriberRegistry',
    'DeliveryStatus',
    'WebhookSender',
    'deliver',
    # Dispatch
    'Dispatcher',
    'PhaseTracker',
    'build_results',
    'compose_message',
    'run_loop',
    'run_test_mode',
    # Offline scoring
    'BacktestSummary',
    'backtest',
    'load_backtest',
    'load_snapshot',
    'save_snapshot',
    'score_snapshot',
    'validate_snapshot',
    # Logging
    'setup_logging',
]
