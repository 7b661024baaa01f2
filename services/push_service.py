"""
Push notification delivery.

Notifications are fire-and-forget: the recipient's push token is looked up
in the request thread, the gateway POST runs on a small thread pool, and
failures are only logged. Without PUSH_GATEWAY_URL notifications are logged
and dropped.
"""
import logging
from concurrent.futures import ThreadPoolExecutor

import requests

logger = logging.getLogger(__name__)

# Thread pool for gateway requests
executor = ThreadPoolExecutor(max_workers=2)


class PushService:
    """Sends push notifications through an HTTP gateway."""

    def __init__(self, push_tokens_repository, gateway_url=None, timeout=5):
        self.push_tokens_repository = push_tokens_repository
        self.gateway_url = gateway_url
        self.timeout = timeout

    def new_expense_received(self, recipient, expense, actor):
        self._notify(recipient, {
            'type': 'new_expense',
            'actor': actor,
            'expense': expense.to_dict(),
        })

    def expense_removed(self, recipient, expense, actor):
        self._notify(recipient, {
            'type': 'expense_removed',
            'actor': actor,
            'expense': expense.to_dict(),
        })

    def friend_request_received(self, recipient, sender):
        self._notify(recipient, {'type': 'friend_request', 'actor': sender})

    def friend_request_accepted(self, recipient, accepter):
        self._notify(recipient, {'type': 'friend_request_accepted', 'actor': accepter})

    def _notify(self, recipient, payload):
        try:
            token = self.push_tokens_repository.get_push_token(recipient)
        except Exception as e:
            logger.error(f"push: cannot get push token[recipient={recipient}]: {e}")
            return
        if token is None:
            logger.info(f"push: no token registered[recipient={recipient}]")
            return
        if not self.gateway_url:
            logger.info(f"push: no gateway configured, dropping {payload['type']}[recipient={recipient}]")
            return
        executor.submit(self._send, recipient, {'token': token, 'data': payload})

    def _send(self, recipient, body):
        try:
            response = requests.post(self.gateway_url, json=body, timeout=self.timeout)
            if response.status_code >= 400:
                logger.error(f"push: gateway answered {response.status_code}[recipient={recipient}]")
                return
            logger.info(f"push: delivered {body['data']['type']}[recipient={recipient}]")
        except requests.RequestException as e:
            logger.error(f"push: delivery failed[recipient={recipient}]: {e}")
