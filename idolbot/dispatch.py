"""Dispatch cycle and the phase-driven main loop."""

import logging
import random
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable, Optional

from .algorithms import ALGORITHMS, JOKE_ALGORITHMS
from .delivery import DeliveryStatus, WebhookSender, deliver
from .errors import IdolBotError, ScoringError
from .schemas import Event, Subscriber
from .scoring import Algorithm
from .state import Snapshot, SnapshotSource
from .subscribers import SubscriberRegistry, jokes_for, serious_for, unclaimed_jokes
from .validators import validate_snapshot

logger = logging.getLogger('idolbot.dispatch')

TEST_MODE_PLACEHOLDER = 'Error getting best idols, ignoring due to test mode'


def day_header(event: Event) -> str:
    """The feed's day is zero-based and results are for tomorrow."""
    return f'**Day {event.sim.day + 2}**'


def build_results(snapshot: Snapshot, algorithms: Iterable[Algorithm]) -> dict[str, str]:
    """
    Run every algorithm once against a snapshot.

    Args:
        snapshot: Snapshot to score
        algorithms: Algorithms to run

    Returns:
        Rendered line per algorithm ID, for the algorithms that succeeded
    """
    results = {}
    for algorithm in algorithms:
        try:
            results[algorithm.id] = algorithm.best_line(snapshot)
        except ScoringError as e:
            logger.warning(f'Error getting best pitcher for {algorithm.name}: {e}')
        except Exception as e:
            logger.error(f'{algorithm.name} failed, leaving it out of this cycle: {e!r}')
    return results


def compose_message(
    header: str,
    results: dict[str, str],
    subscriber: Subscriber,
    joke_order: Iterable[Algorithm] = (),
) -> Optional[str]:
    """
    Build one subscriber's message.

    Lines are the header, the subscriber's serious results, the jokes it
    asked for, then the first joke from ``joke_order`` that it did not ask
    for and that succeeded this cycle.

    Returns:
        The message, or None if no algorithm produced a line for this subscriber
    """
    lines = [results[a.id] for a in serious_for(subscriber) if a.id in results]
    lines += [results[a.id] for a in jokes_for(subscriber) if a.id in results]

    unclaimed = {a.id for a in unclaimed_jokes(subscriber)}
    joke = next((a for a in joke_order if a.id in unclaimed and a.id in results), None)
    if joke is not None:
        lines.append(results[joke.id])

    if not lines:
        return None
    return '\n'.join([header, *lines])


class Dispatcher:
    """Builds a snapshot for an event and sends the results to every subscriber."""

    def __init__(
        self,
        source: SnapshotSource,
        registry: SubscriberRegistry,
        sender: WebhookSender,
        max_workers: int = 8,
        rng: Optional[random.Random] = None,
    ):
        self.source = source
        self.registry = registry
        self.sender = sender
        self.max_workers = max_workers
        self.rng = rng or random.Random()

    def get_best(self, event: Event) -> dict[str, str]:
        """
        Fetch a snapshot for the event and score every algorithm.

        Raises:
            SnapshotError: If the snapshot could not be fetched
        """
        snapshot = Snapshot.from_event(event, self.source)
        for problem in validate_snapshot(snapshot):
            logger.debug(problem)
        return build_results(snapshot, ALGORITHMS + JOKE_ALGORITHMS)

    def send_hook(self, event: Event, retry: bool = True, test_mode: bool = False) -> bool:
        """
        Run one dispatch cycle.

        Args:
            event: The event that triggered the cycle
            retry: Retry once with a fresh snapshot if the first attempt fails
            test_mode: Send a placeholder message instead of giving up

        Returns:
            True if anything was sent
        """
        header = day_header(event)
        try:
            results = self.get_best(event)
        except IdolBotError as e:
            logger.error(f'Error getting best idols: {e}')
            if retry:
                logger.info('Retrying...')
                return self.send_hook(event, retry=False, test_mode=test_mode)
            if not test_mode:
                logger.error('Failed twice, abandoning this cycle')
                return False
            return self.broadcast(lambda subscriber: f'{header}\n{TEST_MODE_PLACEHOLDER}')

        logger.info(f'Best idols for {header}:\n' + '\n'.join(results.values()))
        joke_order = list(JOKE_ALGORITHMS)
        self.rng.shuffle(joke_order)
        return self.broadcast(lambda subscriber: compose_message(header, results, subscriber, joke_order))

    def broadcast(self, compose) -> bool:
        """
        Send a message to every subscriber concurrently.

        Args:
            compose: Called with each subscriber; returns its message, or None to skip it

        Returns:
            True if at least one message was delivered
        """
        subscribers = self.registry.list()
        logger.info(f'Sending to {len(subscribers)} webhooks')

        jobs = [(s, content) for s in subscribers if (content := compose(s)) is not None]
        if not jobs:
            logger.warning('Nothing to send')
            return False

        sent = 0
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = {
                executor.submit(deliver, self.sender, self.registry, subscriber, content): subscriber
                for subscriber, content in jobs
            }
            for future in as_completed(futures):
                subscriber = futures[future]
                try:
                    if future.result() is DeliveryStatus.SENT:
                        sent += 1
                except Exception as e:
                    logger.error(f'Delivery to {subscriber.url} raised: {e}')

        logger.info(f'Delivered to {sent}/{len(jobs)} webhooks')
        return sent > 0


class PhaseTracker:
    """
    Decides which events start a dispatch cycle.

    - Postseason: fire once while tomorrow's schedule is non-empty, then stay
      quiet until it empties (games have started).
    - Regular season: fire, then stay quiet until the day changes.
    - Anything else: never fire.

    A phase change also ends a quiet period.
    """

    def __init__(self, regular_season_phase: int = 2, postseason_phases: Iterable[int] = (3, 4, 5)):
        self.regular_season_phase = regular_season_phase
        self.postseason_phases = frozenset(postseason_phases)
        self._phase: Optional[int] = None
        self._day: Optional[int] = None

    def _waiting(self, event: Event) -> bool:
        sim = event.sim
        if self._phase is None or sim.phase != self._phase:
            return False
        if self._phase in self.postseason_phases:
            return bool(event.value.games.tomorrow_schedule)
        return sim.day == self._day

    def should_dispatch(self, event: Event) -> bool:
        sim = event.sim
        if self._waiting(event):
            return False
        self._phase = None
        self._day = None

        if sim.phase in self.postseason_phases:
            if not event.value.games.tomorrow_schedule:
                return False
            logger.info(f'Postseason phase {sim.phase}, day {sim.day}: dispatching')
        elif sim.phase == self.regular_season_phase:
            logger.info(f'Regular season day {sim.day}: dispatching')
        else:
            logger.debug(f'Phase {sim.phase}: nothing to do')
            return False

        self._phase = sim.phase
        self._day = sim.day
        return True


def run_loop(client, dispatcher: Dispatcher, tracker: PhaseTracker, max_events: Optional[int] = None) -> int:
    """
    Consume events and dispatch when the tracker says so.

    Args:
        client: Event source with a blocking ``next_event()``
        dispatcher: Runs the dispatch cycles
        tracker: Decides which events trigger a cycle
        max_events: Stop after this many events (None runs forever)

    Returns:
        Number of dispatch cycles started
    """
    events = 0
    cycles = 0
    while max_events is None or events < max_events:
        event = client.next_event()
        events += 1
        if tracker.should_dispatch(event):
            cycles += 1
            try:
                dispatcher.send_hook(event)
            except Exception as e:
                logger.error(f'Dispatch cycle for day {event.sim.day} failed: {e!r}')
    return cycles


def run_test_mode(client, dispatcher: Dispatcher) -> bool:
    """Take one event, dispatch once without retrying, and return."""
    logger.info('Test mode: waiting for one event')
    event = client.next_event()
    return dispatcher.send_hook(event, retry=False, test_mode=True)
