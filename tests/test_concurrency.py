"""
Unit tests for keyed locks and realtime event queues.
"""
import threading
import time

import pytest

from services.locks import KeyedLocks
from services.realtime_events import RealtimeEvents


pytestmark = pytest.mark.unit


class TestKeyedLocks:
    """Tests for KeyedLocks."""

    def test_same_key_is_serialized(self):
        locks = KeyedLocks()
        inside = []
        overlaps = []

        def worker():
            with locks.hold('user-1'):
                inside.append(1)
                if len(inside) > 1:
                    overlaps.append(True)
                time.sleep(0.01)
                inside.pop()

        threads = [threading.Thread(target=worker) for _ in range(5)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert overlaps == []

    def test_different_keys_do_not_block(self):
        locks = KeyedLocks()
        entered = threading.Event()

        def other():
            with locks.hold('user-2'):
                entered.set()

        with locks.hold('user-1'):
            thread = threading.Thread(target=other)
            thread.start()
            assert entered.wait(timeout=1)
            thread.join()

    def test_locks_are_released_after_use(self):
        locks = KeyedLocks()
        with locks.hold('user-1'):
            assert len(locks) == 1
        assert len(locks) == 0

    def test_lock_released_on_error(self):
        locks = KeyedLocks()
        with pytest.raises(RuntimeError):
            with locks.hold('user-1'):
                raise RuntimeError('boom')
        assert len(locks) == 0


class TestRealtimeEvents:
    """Tests for long-poll event queues."""

    def test_poll_returns_pending_events_once(self):
        events = RealtimeEvents()
        events.expenses_updated('bob', 'alice')
        events.counterparties_updated('bob')

        assert events.poll('bob', 0) == [
            {'type': 'expenses_updated', 'counterparty': 'alice'},
            {'type': 'counterparties_updated'},
        ]
        assert events.poll('bob', 0) == []

    def test_duplicate_events_are_collapsed(self):
        events = RealtimeEvents()
        events.friends_updated('bob')
        events.friends_updated('bob')
        assert events.poll('bob', 0) == [{'type': 'friends_updated'}]

    def test_events_are_per_user(self):
        events = RealtimeEvents()
        events.friends_updated('bob')
        assert events.poll('alice', 0) == []

    def test_poll_wakes_up_on_publish(self):
        events = RealtimeEvents()
        received = []

        thread = threading.Thread(target=lambda: received.extend(events.poll('bob', 5)))
        thread.start()
        time.sleep(0.05)
        events.friends_updated('bob')
        thread.join(timeout=5)

        assert received == [{'type': 'friends_updated'}]
