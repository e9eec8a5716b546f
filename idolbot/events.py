"""Event stream client.

Keeps a server-sent-events connection to the league feed open for as long as
the process runs. Any failure on the wire (connection refused, read error,
malformed payload, the server closing the stream) is handled here by
reconnecting; callers of ``next_event`` only ever see parsed events.
"""

import codecs
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Iterable, Iterator, Optional, Union
from urllib.parse import urlsplit

import requests
from pydantic import ValidationError

from .errors import ConfigurationError, StreamConnectionError
from .schemas import BotConfig, Event

logger = logging.getLogger('idolbot.events')

SSE_HEADERS = {
    'Accept': 'text/event-stream',
    'Cache-Control': 'no-cache',
}


@dataclass(frozen=True)
class MessageFrame:
    """A complete message: its ``data:`` lines joined with newlines."""

    data: str
    event: str = 'message'
    id: Optional[str] = None


@dataclass(frozen=True)
class RetryFrame:
    """A frame that only tells the client how long to wait before reconnecting."""

    retry_ms: int


Frame = Union[MessageFrame, RetryFrame]

LINE_END = re.compile(r'\r\n|\r|\n')


def split_lines(chunks: Iterable[Union[str, bytes]]) -> Iterator[str]:
    """
    Split a chunked body into lines on CRLF, CR or LF only.

    Other Unicode line separators (U+2028 and friends) are ordinary
    characters inside a line. Byte chunks are decoded as UTF-8, even when a
    character is split across chunks.

    Args:
        chunks: Body chunks as they arrive

    Yields:
        Lines without their terminators
    """
    decoder = codecs.getincrementaldecoder('utf-8')(errors='replace')
    buffer = ''
    for chunk in chunks:
        if isinstance(chunk, bytes):
            chunk = decoder.decode(chunk)
        buffer += chunk
        while True:
            match = LINE_END.search(buffer)
            if match is None:
                break
            # A CR at the very end may be the first half of a CRLF
            if match.group() == '\r' and match.end() == len(buffer):
                break
            yield buffer[:match.start()]
            buffer = buffer[match.end():]

    buffer += decoder.decode(b'', final=True)
    if buffer.endswith('\r'):
        yield buffer[:-1]
    elif buffer:
        yield buffer


def decode_frames(lines: Iterable[Union[str, bytes]]) -> Iterator[Frame]:
    """
    Decode server-sent-event lines into frames.

    Frames end at a blank line. Comment lines (starting with ':') are
    keep-alives and are dropped. An unterminated frame at the end of the
    stream is discarded.

    Args:
        lines: Lines without their line terminators

    Yields:
        RetryFrame for a ``retry:`` field, MessageFrame for frames with data
    """
    data_lines: list[str] = []
    event_type = ''
    event_id = None
    retry = None

    for line in lines:
        if isinstance(line, bytes):
            line = line.decode('utf-8', errors='replace')

        if not line:
            if retry is not None:
                yield RetryFrame(retry_ms=retry)
            if data_lines:
                yield MessageFrame(data='\n'.join(data_lines), event=event_type or 'message', id=event_id)
            data_lines, event_type, event_id, retry = [], '', None, None
            continue

        if line.startswith(':'):
            continue

        name, _, value = line.partition(':')
        if value.startswith(' '):
            value = value[1:]

        if name == 'data':
            data_lines.append(value)
        elif name == 'event':
            event_type = value
        elif name == 'id':
            event_id = value
        elif name == 'retry' and value.isdigit():
            retry = int(value)


def validate_stream_url(url: str) -> str:
    """Reject URLs that can never be connected to.

    Raises:
        ConfigurationError: If the URL is not an absolute http(s) URL
    """
    parts = urlsplit(url)
    if parts.scheme not in ('http', 'https') or not parts.netloc:
        raise ConfigurationError(f'Invalid stream URL: {url!r}')
    return url


class EventStreamClient:
    """
    Resilient client for the league event stream.

    The client is either disconnected or connected (an open response, its
    frame decoder and the time the connection opened). Reconnection replaces
    the response; the old one is closed and never reused.

    Cool-downs:
        - connect, read and parse failures wait ``failure_cooldown``
        - a stream the server closed waits according to how long it was open:
          ``short_lived_cooldown`` under ``short_lived_threshold`` seconds,
          ``medium_lived_cooldown`` under ``long_lived_threshold`` seconds,
          and nothing at all after that
    """

    def __init__(
        self,
        url: str,
        session: Optional[requests.Session] = None,
        failure_cooldown: float = 5.0,
        short_lived_cooldown: float = 30.0,
        medium_lived_cooldown: float = 5.0,
        short_lived_threshold: float = 30.0,
        long_lived_threshold: float = 45.0,
        connect_timeout: float = 10.0,
        read_timeout: Optional[float] = 120.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = validate_stream_url(url)
        self.session = session or requests.Session()
        self.failure_cooldown = failure_cooldown
        self.short_lived_cooldown = short_lived_cooldown
        self.medium_lived_cooldown = medium_lived_cooldown
        self.short_lived_threshold = short_lived_threshold
        self.long_lived_threshold = long_lived_threshold
        self.timeout = (connect_timeout, read_timeout)
        self._sleep = sleep
        self._clock = clock
        self._response: Optional[requests.Response] = None
        self._frames: Optional[Iterator[Frame]] = None
        self.opened_at: Optional[float] = None

    @classmethod
    def from_config(cls, config: BotConfig, session: Optional[requests.Session] = None) -> 'EventStreamClient':
        return cls(
            config.stream_url,
            session=session,
            failure_cooldown=config.failure_cooldown,
            short_lived_cooldown=config.short_lived_cooldown,
            medium_lived_cooldown=config.medium_lived_cooldown,
            short_lived_threshold=config.short_lived_threshold,
            long_lived_threshold=config.long_lived_threshold,
            connect_timeout=config.request_timeout,
            read_timeout=config.stream_read_timeout,
        )

    @property
    def connected(self) -> bool:
        return self._frames is not None

    def _open(self) -> requests.Response:
        response = self.session.get(self.url, headers=SSE_HEADERS, stream=True, timeout=self.timeout)
        try:
            response.raise_for_status()
        except requests.HTTPError:
            response.close()
            raise
        return response

    def connect(self) -> None:
        """
        Open the stream, retrying once after ``failure_cooldown``.

        Raises:
            StreamConnectionError: If both attempts failed
        """
        try:
            response = self._open()
        except requests.RequestException as e:
            logger.warning(f'Failed to connect: {e}')
            self._sleep(self.failure_cooldown)
            logger.debug('Retrying...')
            try:
                response = self._open()
            except requests.RequestException as e:
                raise StreamConnectionError(f'Could not connect to {self.url}: {e}') from e

        self.close()
        self._response = response
        self._frames = decode_frames(split_lines(response.iter_content(chunk_size=None)))
        self.opened_at = self._clock()
        logger.debug(f'Connected to {self.url}')

    def close(self) -> None:
        """Drop the current connection, if any."""
        if self._response is not None:
            self._response.close()
        self._response = None
        self._frames = None
        self.opened_at = None

    def cooldown_for(self, open_for: float) -> float:
        """How long to wait before reconnecting a stream that was open ``open_for`` seconds."""
        if open_for < self.short_lived_threshold:
            return self.short_lived_cooldown
        if open_for < self.long_lived_threshold:
            return self.medium_lived_cooldown
        return 0.0

    def _reconnect(self, reason: str, cooldown: float) -> None:
        """Close, wait ``cooldown`` and connect again, for as long as it takes."""
        self.close()
        if cooldown > 0:
            logger.debug(f'Waiting {cooldown:.0f}s after {reason}')
            self._sleep(cooldown)
        while True:
            logger.debug('Reconnecting...')
            try:
                self.connect()
                return
            except StreamConnectionError as e:
                logger.error(f'Reconnect failed: {e}')
                self._sleep(self.failure_cooldown)

    def next_event(self) -> Event:
        """
        Block until the next event arrives.

        Never raises for network or payload problems; the failed message is
        discarded and the stream reopened instead.
        """
        if not self.connected:
            self._reconnect('startup', 0.0)

        while True:
            logger.debug('Waiting for event')
            try:
                frame = next(self._frames)
            except StopIteration:
                open_for = self._clock() - self.opened_at
                logger.warning(f'Event stream ended after {open_for:.0f}s')
                self._reconnect('stream end', self.cooldown_for(open_for))
                continue
            except requests.RequestException as e:
                logger.error(f'Error receiving event: {e}')
                self._reconnect('read error', self.failure_cooldown)
                continue

            if isinstance(frame, RetryFrame):
                logger.debug(f'got Retry: {frame.retry_ms}')
                continue

            logger.debug('Received event')
            try:
                event = Event.model_validate_json(frame.data)
            except ValidationError as e:
                logger.error(f"Couldn't parse event: {e}")
                self._reconnect('parse error', self.failure_cooldown)
                continue

            logger.debug('Parsed event')
            return event

    def __iter__(self) -> Iterator[Event]:
        while True:
            yield self.next_event()
