"""
In-process realtime event queues drained by long polling.

Each user has a queue of pending events. Producers append and wake any
waiting poller; `poll` returns immediately when events are pending, or
waits up to `timeout` seconds for the first one. Queues live in process
memory only.
"""
import logging
import threading
from collections import defaultdict

logger = logging.getLogger(__name__)

EXPENSES_UPDATED = 'expenses_updated'
COUNTERPARTIES_UPDATED = 'counterparties_updated'
FRIENDS_UPDATED = 'friends_updated'


class RealtimeEvents:
    """Per-user event queues with long-poll delivery."""

    def __init__(self):
        self._condition = threading.Condition()
        self._queues = defaultdict(list)

    def expenses_updated(self, user, actor):
        self._publish(user, {'type': EXPENSES_UPDATED, 'counterparty': actor})

    def counterparties_updated(self, user):
        self._publish(user, {'type': COUNTERPARTIES_UPDATED})

    def friends_updated(self, user):
        self._publish(user, {'type': FRIENDS_UPDATED})

    def poll(self, user, timeout):
        """Return and clear the user's pending events.

        Waits up to `timeout` seconds when nothing is pending; returns an
        empty list if nothing arrived.
        """
        with self._condition:
            if not self._queues.get(user):
                self._condition.wait_for(lambda: bool(self._queues.get(user)), timeout=timeout)
            return self._queues.pop(user, [])

    def pending(self, user):
        with self._condition:
            return list(self._queues.get(user, []))

    def _publish(self, user, event):
        with self._condition:
            queue = self._queues[user]
            # same event already waiting, no need to queue it twice
            if event not in queue:
                queue.append(event)
            self._condition.notify_all()
        logger.debug(f"realtime: {event['type']}[user={user}]")
