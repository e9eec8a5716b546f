"""Bot configuration management."""

import logging
import os
from functools import lru_cache
from pathlib import Path

from .schemas import BotConfig
from .utils import load_json

DEFAULT_CONFIG_PATH = Path('data') / 'bot_config.json'

logger = logging.getLogger('idolbot.config')


def config_path() -> Path:
    """Config file location: $IDOLBOT_CONFIG, else data/bot_config.json."""
    return Path(os.environ.get('IDOLBOT_CONFIG', DEFAULT_CONFIG_PATH))


@lru_cache(maxsize=1)
def get_config() -> BotConfig:
    """
    Load bot configuration.

    Configuration is cached after first load. A missing file means all
    defaults; an invalid file is a fatal startup error.

    Returns:
        BotConfig object with validated settings

    Raises:
        ValueError: If the config file has an invalid structure

    Example:
        from idolbot.config import get_config
        config = get_config()
        print(f"Feed: {config.stream_url}")
    """
    path = config_path()
    if not path.exists():
        logger.debug(f'No config file at {path}, using defaults')
        return BotConfig()
    return load_json(path, schema=BotConfig)


def get_stream_url() -> str:
    """Get the event stream URL from config."""
    return get_config().stream_url


def get_subscribers_path() -> Path:
    """Get the subscriber registry location from config."""
    return Path(get_config().subscribers_path)


def get_manual_webhook_urls() -> list[str]:
    """Webhook URLs listed in $WEBHOOK_URL (comma-separated)."""
    raw = os.environ.get('WEBHOOK_URL', '')
    return [url.strip() for url in raw.split(',') if url.strip()]


def clear_config_cache() -> None:
    """
    Clear the configuration cache.

    Use this if the config file or $IDOLBOT_CONFIG changes at runtime.
    """
    get_config.cache_clear()
