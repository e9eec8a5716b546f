"""Webhook subscriber registry, stored in a JSON file.

Each subscriber may pick which algorithms it receives. Without a selection it
gets every serious algorithm. On top of that every subscriber gets one random
joke algorithm per cycle, drawn from the jokes it has not already selected.
"""

import logging
import threading
from pathlib import Path
from typing import Iterable, Optional

from .algorithms import ALGORITHMS, ALGORITHMS_BY_ID, JOKE_ALGORITHMS
from .schemas import Subscriber, SubscribersFile
from .scoring import Algorithm
from .utils import load_json, save_json

logger = logging.getLogger('idolbot.subscribers')


def serious_for(subscriber: Subscriber) -> list[Algorithm]:
    """Serious algorithms the subscriber receives, in declaration order."""
    if subscriber.algorithms is None:
        return list(ALGORITHMS)
    return [a for a in ALGORITHMS if a.id in subscriber.algorithms]


def jokes_for(subscriber: Subscriber) -> list[Algorithm]:
    """Joke algorithms the subscriber explicitly selected."""
    if subscriber.algorithms is None:
        return []
    return [a for a in JOKE_ALGORITHMS if a.id in subscriber.algorithms]


def unclaimed_jokes(subscriber: Subscriber) -> list[Algorithm]:
    """Joke algorithms still available for the random joke slot."""
    claimed = set(subscriber.algorithms or ())
    return [a for a in JOKE_ALGORITHMS if a.id not in claimed]


def validate_algorithm_ids(ids: Iterable[str]) -> list[str]:
    """
    Check that every ID names a known algorithm.

    Raises:
        ValueError: Listing the unknown IDs
    """
    ids = list(ids)
    unknown = [i for i in ids if i not in ALGORITHMS_BY_ID]
    if unknown:
        raise ValueError(f'Unknown algorithms: {", ".join(unknown)}')
    return ids


class SubscriberRegistry:
    """
    Subscribers persisted in a JSON file.

    Every change rewrites the file under a lock. Deliveries deregister dead
    webhooks from worker threads.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _load(self) -> SubscribersFile:
        if not self.path.exists():
            return SubscribersFile()
        return load_json(self.path, schema=SubscribersFile)

    def _save(self, data: SubscribersFile) -> None:
        save_json(self.path, data)

    def count(self) -> int:
        return len(self.list())

    def get(self, url: str) -> Optional[Subscriber]:
        return next((s for s in self.list() if s.url == url), None)

    def add(self, url: str, algorithms: Optional[list[str]] = None) -> bool:
        """
        Register a webhook. Adding a known URL is a no-op.

        Returns:
            True if the URL was new
        """
        if algorithms is not None:
            algorithms = validate_algorithm_ids(algorithms)
        with self._lock:
            data = self._load()
            if any(s.url == url for s in data.subscribers):
                return False
            logger.debug(f'adding URL: {url!r}')
            data.subscribers.append(Subscriber(url=url, algorithms=algorithms))
            self._save(data)
            return True

    def add_many(self, urls: Iterable[str]) -> int:
        """Register several webhooks; returns how many were new."""
        return sum(1 for url in urls if self.add(url))

    def remove(self, url: str) -> bool:
        """Deregister a webhook; returns False if it was not registered."""
        with self._lock:
            data = self._load()
            kept = [s for s in data.subscribers if s.url != url]
            if len(kept) == len(data.subscribers):
                return False
            logger.info(f'Removing webhook {url}')
            self._save(SubscribersFile(subscribers=kept))
            return True

    def set_algorithms(self, url: str, algorithms: Optional[list[str]]) -> None:
        """
        Change which algorithms a subscriber receives (None for the default).

        Raises:
            KeyError: If the URL is not registered
            ValueError: If an algorithm ID is unknown
        """
        if algorithms is not None:
            algorithms = validate_algorithm_ids(algorithms)
        with self._lock:
            data = self._load()
            for i, subscriber in enumerate(data.subscribers):
                if subscriber.url == url:
                    data.subscribers[i] = Subscriber(url=url, algorithms=algorithms)
                    self._save(data)
                    return
            raise KeyError(f'Not subscribed: {url}')

    def list(self) -> list[Subscriber]:
        with self._lock:
            return [*self._load().subscribers]
