"""Tests for the event stream client."""

import json

import pytest
import requests
from conftest import FakeClock, FakeStreamResponse, FakeStreamSession, event_json, real_response, sse_message

from idolbot.errors import ConfigurationError, StreamConnectionError
from idolbot.events import EventStreamClient, MessageFrame, RetryFrame, decode_frames, split_lines

URL = 'https://example.test/events/streamData'


def make_client(session, clock, **kwargs):
    return EventStreamClient(URL, session=session, sleep=clock.sleep, clock=clock, **kwargs)


class TestDecodeFrames:
    """Tests for server-sent-events framing."""

    def test_single_message(self):
        assert list(decode_frames(['data: {"a": 1}', ''])) == [MessageFrame(data='{"a": 1}')]

    def test_multiline_data_joined(self):
        frames = list(decode_frames(['data: first', 'data: second', '']))
        assert frames == [MessageFrame(data='first\nsecond')]

    def test_event_and_id_fields(self):
        frames = list(decode_frames(['event: update', 'id: 7', 'data: x', '']))
        assert frames == [MessageFrame(data='x', event='update', id='7')]

    def test_comments_ignored(self):
        assert list(decode_frames([': keep-alive', '', 'data: x', ''])) == [MessageFrame(data='x')]

    def test_retry_frame(self):
        assert list(decode_frames(['retry: 3000', ''])) == [RetryFrame(retry_ms=3000)]

    def test_bytes_lines(self):
        assert list(decode_frames([b'data: x', b''])) == [MessageFrame(data='x')]

    def test_unterminated_frame_discarded(self):
        assert list(decode_frames(['data: x', '', 'data: partial'])) == [MessageFrame(data='x')]


class TestConfiguration:
    """Tests for startup validation."""

    @pytest.mark.parametrize('url', ['not a url', 'ftp://example.test/stream', 'https://'])
    def test_bad_url(self, url):
        with pytest.raises(ConfigurationError):
            EventStreamClient(url, session=FakeStreamSession())

    def test_sends_sse_headers(self):
        clock = FakeClock()
        session = FakeStreamSession(FakeStreamResponse(sse_message(event_json())))
        make_client(session, clock).connect()
        url, kwargs = session.requests[0]
        assert url == URL
        assert kwargs['stream'] is True
        assert kwargs['headers']['Accept'] == 'text/event-stream'


class TestConnect:
    """Tests for the initial connection."""

    def test_retries_once(self):
        clock = FakeClock()
        session = FakeStreamSession(
            requests.ConnectionError('refused'),
            FakeStreamResponse(sse_message(event_json())),
        )
        client = make_client(session, clock)
        client.connect()
        assert client.connected
        assert clock.sleeps == [5.0]

    def test_fails_after_second_attempt(self):
        clock = FakeClock()
        session = FakeStreamSession(
            requests.ConnectionError('refused'),
            FakeStreamResponse(status_code=503),
        )
        client = make_client(session, clock)
        with pytest.raises(StreamConnectionError):
            client.connect()
        assert not client.connected
        assert len(session.requests) == 2


class TestNextEvent:
    """Tests for event delivery and recovery."""

    def test_parses_event(self):
        clock = FakeClock()
        session = FakeStreamSession(FakeStreamResponse(sse_message(event_json(phase=2, day=10))))
        event = make_client(session, clock).next_event()
        assert event.sim.phase == 2
        assert event.sim.day == 10
        assert clock.sleeps == []

    def test_retry_frames_ignored(self):
        clock = FakeClock()
        lines = ['retry: 2000', '', *sse_message(event_json(day=3))]
        session = FakeStreamSession(FakeStreamResponse(lines))
        assert make_client(session, clock).next_event().sim.day == 3

    def test_parse_error_reconnects(self):
        """A malformed message is discarded and the stream reopened."""
        clock = FakeClock()
        first = FakeStreamResponse([*sse_message('not json'), *sse_message(event_json(day=1))])
        second = FakeStreamResponse(sse_message(event_json(day=2)))
        session = FakeStreamSession(first, second)
        event = make_client(session, clock).next_event()
        assert event.sim.day == 2
        assert clock.sleeps == [5.0]
        assert first.closed

    def test_read_error_reconnects(self):
        clock = FakeClock()
        first = FakeStreamResponse(error=requests.ConnectionError('reset'))
        second = FakeStreamResponse(sse_message(event_json(day=4)))
        session = FakeStreamSession(first, second)
        assert make_client(session, clock).next_event().sim.day == 4
        assert clock.sleeps == [5.0]

    def test_reconnect_failures_keep_retrying(self):
        """Reconnects never give up; each failed round waits and tries again."""
        clock = FakeClock()
        session = FakeStreamSession(
            FakeStreamResponse(error=requests.ConnectionError('reset')),
            requests.ConnectionError('refused'),
            requests.ConnectionError('refused'),
            FakeStreamResponse(sse_message(event_json(day=5))),
        )
        assert make_client(session, clock).next_event().sim.day == 5
        # read error, retry inside connect, then the failed round itself
        assert clock.sleeps == [5.0, 5.0, 5.0]


class TestStreamEndCooldown:
    """Tests for cool-downs after the server closes the stream."""

    @pytest.mark.parametrize(
        'open_for,expected_sleeps',
        [
            (10.0, [30.0]),
            (40.0, [5.0]),
            (60.0, []),
        ],
    )
    def test_tiered_by_connection_age(self, open_for, expected_sleeps):
        clock = FakeClock()
        session = FakeStreamSession(
            FakeStreamResponse(clock=clock, open_for=open_for),
            FakeStreamResponse(sse_message(event_json(day=6))),
        )
        event = make_client(session, clock).next_event()
        assert event.sim.day == 6
        assert clock.sleeps == expected_sleeps

    def test_cooldown_for(self):
        client = EventStreamClient(URL, session=FakeStreamSession())
        assert client.cooldown_for(0) == 30.0
        assert client.cooldown_for(29.9) == 30.0
        assert client.cooldown_for(30) == 5.0
        assert client.cooldown_for(44.9) == 5.0
        assert client.cooldown_for(45) == 0.0


def named_event_body(name, newline='\n'):
    """One SSE message whose tomorrow game has a home team called ``name``."""
    payload = json.dumps(
        {
            'value': {
                'games': {
                    'sim': {'season': 11, 'day': 20, 'phase': 2},
                    'schedule': [],
                    'tomorrowSchedule': [{'id': 'g1', 'homeTeam': 't1', 'awayTeam': 't2', 'homeTeamName': name}],
                }
            }
        },
        ensure_ascii=False,
    )
    return f'data: {payload}{newline}{newline}'.encode('utf-8')


class TestSplitLines:
    """Tests for splitting a chunked body into lines."""

    def test_all_three_line_endings(self):
        assert list(split_lines([b'a\nb\r\nc\rd'])) == ['a', 'b', 'c', 'd']

    def test_unicode_separators_stay_in_line(self):
        text = 'one\u2028two\u2029three\x85four\x0bfive\x0csix'
        assert list(split_lines([text.encode('utf-8') + b'\n'])) == [text]

    def test_crlf_split_across_chunks(self):
        assert list(split_lines([b'a\r', b'\nb\n'])) == ['a', 'b']

    def test_character_split_across_chunks(self):
        encoded = 'Zoë\n'.encode('utf-8')
        assert list(split_lines([encoded[:3], encoded[3:]])) == ['Zoë']

    def test_empty_lines_kept(self):
        assert list(split_lines([b'data: x\r\n\r\n'])) == ['data: x', '']

    def test_trailing_cr_at_end_of_body(self):
        assert list(split_lines([b'a\r'])) == ['a']

    def test_str_chunks(self):
        assert list(split_lines(['a\nb', 'c\n'])) == ['a', 'bc']


class TestRealResponse:
    """Tests reading events off a ``requests.Response`` body."""

    def read_one(self, *chunks):
        clock = FakeClock()
        session = FakeStreamSession(real_response(*chunks))
        event = make_client(session, clock).next_event()
        assert clock.sleeps == []
        return event

    def test_line_separator_inside_json_string(self):
        event = self.read_one(named_event_body('Hellmouth\u2028Sunbeams'))
        (game,) = event.value.games.tomorrow_schedule
        assert game.home_team_name == 'Hellmouth\u2028Sunbeams'

    def test_crlf_framed_stream(self):
        event = self.read_one(f'data: {event_json(day=33)}\r\n\r\n'.encode('utf-8'))
        assert event.sim.day == 33

    def test_message_split_over_chunks(self):
        body = named_event_body('Hellmouth\u2028Sunbeams', newline='\r\n')
        cut = body.index('\u2028'.encode('utf-8')) + 1
        crlf = body.index(b'\r\n')
        assert cut < crlf
        chunks = [body[:cut], body[cut:crlf + 1], body[crlf + 1:]]
        event = self.read_one(*chunks)
        assert event.sim.day == 20
        assert event.value.games.tomorrow_schedule[0].home_team_name == 'Hellmouth\u2028Sunbeams'

    def test_comment_and_retry_before_message(self):
        body = f': keepalive\nretry: 1000\n\ndata: {event_json(day=4)}\n\n'.encode('utf-8')
        assert self.read_one(body[:7], body[7:]).sim.day == 4
