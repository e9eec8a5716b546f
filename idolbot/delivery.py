"""Webhook delivery."""

import logging
from enum import Enum
from typing import Optional

import requests

from .schemas import Subscriber

logger = logging.getLogger('idolbot.delivery')

DEFAULT_AVATAR_URL = 'http://hs.hiveswap.com/ezodiac/images/aspect_7.png'


class DeliveryStatus(Enum):
    SENT = 'sent'
    NOT_FOUND = 'not_found'
    FAILED = 'failed'


class WebhookSender:
    """Posts messages to chat webhooks."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        avatar_url: str = DEFAULT_AVATAR_URL,
        timeout: float = 30.0,
    ):
        self.session = session or requests.Session()
        self.avatar_url = avatar_url
        self.timeout = timeout

    def send(self, url: str, content: str) -> DeliveryStatus:
        """
        Post one message.

        Returns:
            NOT_FOUND if the webhook no longer exists (HTTP 404), FAILED for any
            other error, SENT otherwise
        """
        hook = {'content': content, 'avatar_url': self.avatar_url}
        try:
            response = self.session.post(url, json=hook, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f'Failed to send message: {e}')
            return DeliveryStatus.FAILED

        if response.status_code == 404:
            return DeliveryStatus.NOT_FOUND
        if not response.ok:
            logger.warning(f'Failed to send message: HTTP {response.status_code}')
            return DeliveryStatus.FAILED
        return DeliveryStatus.SENT


def deliver(sender: WebhookSender, registry, subscriber: Subscriber, content: str) -> DeliveryStatus:
    """
    Send to one subscriber, retrying once, and deregister it if it is gone.

    Args:
        sender: Webhook sender
        registry: Registry to deregister dead webhooks from
        subscriber: Destination
        content: Message text

    Returns:
        Final delivery status
    """
    status = sender.send(subscriber.url, content)
    if status is DeliveryStatus.FAILED:
        logger.debug('Retrying...')
        status = sender.send(subscriber.url, content)
        if status is DeliveryStatus.FAILED:
            logger.error(f'Failed to send twice to {subscriber.url}, not retrying')

    if status is DeliveryStatus.NOT_FOUND:
        logger.warning(f'Webhook {subscriber.url} not found, unsubscribing')
        registry.remove(subscriber.url)
    elif status is DeliveryStatus.SENT:
        logger.debug('Sent')
    return status
