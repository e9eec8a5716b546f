"""Tests for the dispatch cycle and the phase-driven loop."""

import dataclasses
import math
import random
from unittest.mock import Mock

import pytest
from conftest import FakeSource, make_event, make_position

from idolbot.algorithms import ALGORITHMS, BESTNESS, FRIDAYS, IDOLS, JOKE_ALGORITHMS, SO9, STAT_RATIO
from idolbot.delivery import DeliveryStatus
from idolbot.dispatch import (
    TEST_MODE_PLACEHOLDER,
    Dispatcher,
    PhaseTracker,
    build_results,
    compose_message,
    day_header,
    run_loop,
    run_test_mode,
)
from idolbot.errors import SnapshotError
from idolbot.schemas import Subscriber
from idolbot.scoring import Custom
from idolbot.subscribers import SubscriberRegistry

HOOK = 'https://discord.test/api/webhooks/1/abc'
OTHER_HOOK = 'https://discord.test/api/webhooks/2/def'


@pytest.fixture
def registry(tmp_path):
    registry = SubscriberRegistry(tmp_path / 'subscribers.json')
    registry.add(HOOK)
    return registry


@pytest.fixture
def sender():
    return Mock(send=Mock(return_value=DeliveryStatus.SENT))


def sent_messages(sender):
    return {c.args[0]: c.args[1] for c in sender.send.call_args_list}


class TestBuildResults:
    """Tests for computing every algorithm once."""

    def test_failures_omitted(self, snapshot):
        results = build_results(snapshot, [SO9, BESTNESS])
        assert list(results) == ['so9']
        assert results['so9'].startswith('Best by SO/9: Yazmin Mason')

    def test_unexpected_error_omitted(self, snapshot):
        def boom(snapshot):
            raise RuntimeError('selector crashed')

        broken = dataclasses.replace(SO9, id='broken', name='Broken', strategy=Custom(boom))
        results = build_results(snapshot, [broken, STAT_RATIO])
        assert list(results) == ['stat_ratio']

    def test_nan_rating_does_not_break_cycle(self, snapshot):
        players = [
            make_position('p1', 'Jaylen Hotdogfingers', 't1', hitting_rating=math.nan),
            *snapshot.players[1:],
        ]
        snap = dataclasses.replace(snapshot, players=tuple(players))
        results = build_results(snap, ALGORITHMS + JOKE_ALGORITHMS)
        assert set(a.id for a in ALGORITHMS) <= set(results)
        assert 'Jaylen' not in results['batting_stars']


class TestComposeMessage:
    """Tests for per-subscriber messages."""

    results = {
        'so9': 'so9 line',
        'stat_ratio': 'stat ratio line',
        'fridays': 'fridays line',
        'idols': 'idols line',
    }

    def test_default_subscriber(self):
        message = compose_message('**Day 12**', self.results, Subscriber(url=HOOK), [FRIDAYS, IDOLS])
        assert message == '**Day 12**\nso9 line\nstat ratio line\nfridays line'

    def test_random_joke_skips_failed_algorithms(self):
        message = compose_message('H', self.results, Subscriber(url=HOOK), [BESTNESS, IDOLS])
        assert message.splitlines()[-1] == 'idols line'

    def test_selected_joke_not_repeated(self):
        """A joke the subscriber asked for is not also its random joke."""
        subscriber = Subscriber(url=HOOK, algorithms=['so9', 'fridays'])
        message = compose_message('H', self.results, subscriber, [FRIDAYS, IDOLS])
        assert message == 'H\nso9 line\nfridays line\nidols line'

    def test_nothing_succeeded(self):
        assert compose_message('H', {}, Subscriber(url=HOOK), list(JOKE_ALGORITHMS)) is None


class TestDispatcher:
    """Tests for a whole dispatch cycle."""

    def test_day_header(self):
        assert day_header(make_event(day=10)) == '**Day 12**'

    def test_sends_to_every_subscriber(self, snapshot, registry, sender):
        registry.add(OTHER_HOOK)
        dispatcher = Dispatcher(FakeSource(snapshot), registry, sender, rng=random.Random(1))

        assert dispatcher.send_hook(make_event(day=10))
        messages = sent_messages(sender)
        assert set(messages) == {HOOK, OTHER_HOOK}
        lines = messages[HOOK].splitlines()
        assert lines[0] == '**Day 12**'
        assert lines[1].startswith('Best by SO/9:')
        assert len(lines) == 1 + len(ALGORITHMS) + 1

    def test_retries_snapshot_once(self, snapshot, registry, sender):
        source = FakeSource(SnapshotError('teams down'), snapshot)
        assert Dispatcher(source, registry, sender).send_hook(make_event())
        assert len(source.calls) == 2
        assert sender.send.call_count == 1

    def test_abandons_after_second_failure(self, registry, sender):
        source = FakeSource(SnapshotError('teams down'))
        assert not Dispatcher(source, registry, sender).send_hook(make_event())
        assert len(source.calls) == 2
        sender.send.assert_not_called()

    def test_test_mode_placeholder(self, registry, sender):
        source = FakeSource(SnapshotError('teams down'))
        assert Dispatcher(source, registry, sender).send_hook(make_event(day=0), retry=False, test_mode=True)
        assert len(source.calls) == 1
        assert sent_messages(sender)[HOOK] == f'**Day 2**\n{TEST_MODE_PLACEHOLDER}'

    def test_dead_webhook_removed(self, snapshot, registry):
        sender = Mock(send=Mock(return_value=DeliveryStatus.NOT_FOUND))
        assert not Dispatcher(FakeSource(snapshot), registry, sender).send_hook(make_event())
        assert registry.count() == 0

    def test_one_failing_destination_does_not_block_others(self, snapshot, registry):
        registry.add(OTHER_HOOK)

        def send(url, content):
            if url == HOOK:
                raise RuntimeError('boom')
            return DeliveryStatus.SENT

        sender = Mock(send=Mock(side_effect=send))
        assert Dispatcher(FakeSource(snapshot), registry, sender).send_hook(make_event())
        assert OTHER_HOOK in sent_messages(sender)

    def test_no_subscribers(self, snapshot, tmp_path, sender):
        empty = SubscriberRegistry(tmp_path / 'none.json')
        assert not Dispatcher(FakeSource(snapshot), empty, sender).send_hook(make_event())
        sender.send.assert_not_called()


GAME = {'id': 'g', 'homeTeam': 't1', 'awayTeam': 't2'}


class TestPhaseTracker:
    """Tests for which events trigger a dispatch."""

    def test_regular_season_once_per_day(self):
        tracker = PhaseTracker()
        days = [10, 10, 11]
        fired = [tracker.should_dispatch(make_event(phase=2, day=day)) for day in days]
        assert fired == [True, False, True]

    def test_postseason_once_while_games_upcoming(self):
        tracker = PhaseTracker()
        events = [
            make_event(phase=3, day=100, tomorrow=[GAME]),
            make_event(phase=3, day=100, tomorrow=[GAME]),
            make_event(phase=3, day=100),
            make_event(phase=3, day=100),
            make_event(phase=3, day=101, tomorrow=[GAME]),
        ]
        fired = [tracker.should_dispatch(e) for e in events]
        assert fired == [True, False, False, False, True]

    def test_postseason_without_schedule(self):
        assert not PhaseTracker().should_dispatch(make_event(phase=4))

    @pytest.mark.parametrize('phase', [0, 1, 6, 11])
    def test_other_phases_ignored(self, phase):
        assert not PhaseTracker().should_dispatch(make_event(phase=phase, tomorrow=[GAME]))

    def test_phase_change_ends_wait(self):
        tracker = PhaseTracker()
        assert tracker.should_dispatch(make_event(phase=2, day=98))
        assert tracker.should_dispatch(make_event(phase=3, day=98, tomorrow=[GAME]))

    def test_custom_phase_codes(self):
        tracker = PhaseTracker(regular_season_phase=7, postseason_phases=[8])
        assert tracker.should_dispatch(make_event(phase=7, day=1))
        assert not tracker.should_dispatch(make_event(phase=2, day=2))


class TestRunLoop:
    """Tests for the main loop."""

    def test_dispatches_on_new_days(self):
        client = Mock(next_event=Mock(side_effect=[
            make_event(phase=2, day=10),
            make_event(phase=2, day=10),
            make_event(phase=2, day=11),
        ]))
        dispatcher = Mock()
        assert run_loop(client, dispatcher, PhaseTracker(), max_events=3) == 2
        assert [c.args[0].sim.day for c in dispatcher.send_hook.call_args_list] == [10, 11]

    def test_continues_after_failed_cycle(self):
        client = Mock(next_event=Mock(side_effect=[make_event(day=1), make_event(day=2)]))
        dispatcher = Mock(send_hook=Mock(return_value=False))
        assert run_loop(client, dispatcher, PhaseTracker(), max_events=2) == 2

    def test_survives_dispatch_exception(self):
        client = Mock(next_event=Mock(side_effect=[make_event(day=1), make_event(day=2)]))
        dispatcher = Mock(send_hook=Mock(side_effect=[RuntimeError('boom'), True]))
        assert run_loop(client, dispatcher, PhaseTracker(), max_events=2) == 2
        assert dispatcher.send_hook.call_count == 2

    def test_run_test_mode(self):
        event = make_event(phase=0)
        client = Mock(next_event=Mock(return_value=event))
        dispatcher = Mock(send_hook=Mock(return_value=True))
        assert run_test_mode(client, dispatcher)
        dispatcher.send_hook.assert_called_once_with(event, retry=False, test_mode=True)
