#!/usr/bin/env python3
"""
Idol Bot CLI

Watches the league event stream and, once per game day, posts the best
pitchers to idolize to every subscribed webhook.

Usage:
    python idol_bot.py                      # same as "run"
    python idol_bot.py run
    python idol_bot.py test                 # one dispatch cycle, then exit
    python idol_bot.py snapshot out.json    # save the next event's snapshot
    python idol_bot.py score out.json       # score a saved snapshot
    python idol_bot.py backtest days/       # replay saved days against recorded strikeouts
    python idol_bot.py subscribers list
    python idol_bot.py subscribers add https://discord.com/api/webhooks/...
"""

import argparse
import logging
import os
import sys
from pathlib import Path

from idolbot import (
    BlaseballDataFetcher,
    Dispatcher,
    EventStreamClient,
    IdolBotError,
    PhaseTracker,
    Snapshot,
    SubscriberRegistry,
    WebhookSender,
    backtest,
    load_backtest,
    load_snapshot,
    run_loop,
    run_test_mode,
    save_snapshot,
    score_snapshot,
    setup_logging,
)
from idolbot.config import clear_config_cache, get_config, get_manual_webhook_urls
from idolbot.logging_config import parse_level

logger = logging.getLogger('idolbot.cli')


def build_dispatcher(config, registry: SubscriberRegistry) -> Dispatcher:
    return Dispatcher(
        source=BlaseballDataFetcher(timeout=config.request_timeout),
        registry=registry,
        sender=WebhookSender(avatar_url=config.avatar_url, timeout=config.request_timeout),
        max_workers=config.max_delivery_workers,
    )


def open_registry(config) -> SubscriberRegistry:
    """The subscriber registry, with any $WEBHOOK_URL entries added."""
    registry = SubscriberRegistry(config.subscribers_path)
    added = registry.add_many(get_manual_webhook_urls())
    if added:
        logger.info(f'Added {added} webhooks from WEBHOOK_URL')
    return registry


def cmd_run(args, config) -> int:
    registry = open_registry(config)
    logger.info(f'{registry.count()} webhooks subscribed')
    client = EventStreamClient.from_config(config)
    tracker = PhaseTracker(config.regular_season_phase, config.postseason_phases)
    client.connect()
    logger.info('Listening for events')
    run_loop(client, build_dispatcher(config, registry), tracker)
    return 0


def cmd_test(args, config) -> int:
    registry = open_registry(config)
    client = EventStreamClient.from_config(config)
    client.connect()
    sent = run_test_mode(client, build_dispatcher(config, registry))
    client.close()
    return 0 if sent else 1


def cmd_snapshot(args, config) -> int:
    client = EventStreamClient.from_config(config)
    client.connect()
    event = client.next_event()
    client.close()
    snapshot = Snapshot.from_event(event, BlaseballDataFetcher(timeout=config.request_timeout))
    save_snapshot(args.path, snapshot)
    print(f'Saved {len(snapshot.games)} games from season {snapshot.season} to {args.path}')
    return 0


def cmd_score(args, config) -> int:
    snapshot = load_snapshot(args.path)
    lines = score_snapshot(snapshot)
    if not lines:
        print('No algorithm found a pitcher')
        return 1
    for line in lines:
        print(line)
    return 0


def cmd_backtest(args, config) -> int:
    snapshots, outcomes = load_backtest(args.directory)
    if not snapshots:
        print(f'No day_<N>.json snapshots in {args.directory}')
        return 1
    for summary in backtest(snapshots, outcomes):
        for line in summary.lines():
            print(line)
        print()
    return 0


def cmd_subscribers(args, config) -> int:
    registry = SubscriberRegistry(config.subscribers_path)

    if args.action == 'list':
        subscribers = registry.list()
        for subscriber in subscribers:
            algorithms = ', '.join(subscriber.algorithms) if subscriber.algorithms is not None else 'default'
            print(f'{subscriber.url}  [{algorithms}]')
        print(f'{len(subscribers)} subscribers')
        return 0

    if not args.url:
        print(f'subscribers {args.action} needs a URL')
        return 2

    if args.action == 'add':
        algorithms = args.algorithms.split(',') if args.algorithms else None
        if registry.add(args.url, algorithms):
            print(f'Added {args.url}')
        elif algorithms is not None:
            registry.set_algorithms(args.url, algorithms)
            print(f'Updated algorithms for {args.url}')
        else:
            print(f'Already subscribed: {args.url}')
        return 0

    if registry.remove(args.url):
        print(f'Removed {args.url}')
        return 0
    print(f'Not subscribed: {args.url}')
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Blaseball idol pitcher picking bot')
    parser.add_argument(
        '--config', '-c',
        default=None,
        help='Path to bot config JSON (default: $IDOLBOT_CONFIG or data/bot_config.json)',
    )
    parser.add_argument(
        '--log-level', '-l',
        default=os.environ.get('LOG_LEVEL', 'info'),
        help='Console log level (default: $LOG_LEVEL or info)',
    )
    parser.add_argument(
        '--no-log-file',
        action='store_true',
        help='Only log to the console',
    )

    commands = parser.add_subparsers(dest='command')
    commands.add_parser('run', help='Listen to the event stream and dispatch (default)')
    commands.add_parser('test', help='Dispatch once in test mode and exit')

    snapshot = commands.add_parser('snapshot', help="Save the next event's snapshot to a file")
    snapshot.add_argument('path', type=Path, help='Output JSON file')

    score = commands.add_parser('score', help='Score a saved snapshot')
    score.add_argument('path', type=Path, help='Snapshot JSON file')

    days = commands.add_parser('backtest', help='Replay saved days against the strikeouts each pick recorded')
    days.add_argument('directory', type=Path, help='Directory of day_<N>.json snapshots and strikeouts.json')

    subscribers = commands.add_parser('subscribers', help='Manage webhook subscribers')
    subscribers.add_argument('action', choices=['list', 'add', 'remove'])
    subscribers.add_argument('url', nargs='?', default=None, help='Webhook URL')
    subscribers.add_argument(
        '--algorithms', '-a',
        default=None,
        help='Comma-separated algorithm IDs to send (add only; default: all serious algorithms)',
    )

    return parser


COMMANDS = {
    'run': cmd_run,
    'test': cmd_test,
    'snapshot': cmd_snapshot,
    'score': cmd_score,
    'backtest': cmd_backtest,
    'subscribers': cmd_subscribers,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.config:
        os.environ['IDOLBOT_CONFIG'] = args.config
        clear_config_cache()

    setup_logging(level=parse_level(args.log_level), log_to_file=not args.no_log_file)

    try:
        config = get_config()
        return COMMANDS[args.command or 'run'](args, config)
    except (IdolBotError, ValueError, FileNotFoundError) as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.info('Interrupted')
        return 130


if __name__ == '__main__':
    sys.exit(main())
