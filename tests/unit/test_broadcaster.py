"""
Unit tests for stream fan-out.
"""

import queue
import threading

import pytest

from httptestserver.core.broadcaster import StreamBroadcaster, Subscriber


class TestSubscriber:
    """Tests for Subscriber."""

    def test_deliver_and_get(self):
        """Test chunks come out in order."""
        subscriber = Subscriber()
        subscriber.deliver("a")
        subscriber.deliver("b")

        assert subscriber.get(timeout=1) == "a"
        assert subscriber.get(timeout=1) == "b"

    def test_get_timeout(self):
        """Test waiting on an empty subscriber."""
        with pytest.raises(queue.Empty):
            Subscriber().get(timeout=0.01)

    def test_close_ends_iteration(self):
        """Test that iteration drains queued chunks then stops."""
        subscriber = Subscriber()
        subscriber.deliver("a")
        subscriber.close()

        assert list(subscriber) == ["a"]

    def test_deliver_after_close(self):
        """Test that a closed subscriber refuses chunks."""
        subscriber = Subscriber()
        subscriber.close()

        assert subscriber.closed
        assert not subscriber.deliver("a")

    def test_close_twice(self):
        """Test that close is idempotent."""
        subscriber = Subscriber()
        subscriber.close()
        subscriber.close()

        assert list(subscriber) == []


class TestStreamBroadcaster:
    """Tests for StreamBroadcaster."""

    def test_send_to_all(self):
        """Test fan-out to every subscriber."""
        broadcaster = StreamBroadcaster()
        first = broadcaster.subscribe()
        second = broadcaster.subscribe()

        broadcaster.send("x")
        broadcaster.send_line("y")

        assert first.get(timeout=1) == "x"
        assert first.get(timeout=1) == "y\n"
        assert second.get(timeout=1) == "x"
        assert second.get(timeout=1) == "y\n"

    def test_send_without_subscribers(self):
        """Test that sending to nobody is a no-op."""
        broadcaster = StreamBroadcaster()
        broadcaster.send("x")

        assert broadcaster.open_connections_count() == 0

    def test_closed_subscriber_pruned(self):
        """Test that a subscriber closed by its reader is removed on send."""
        broadcaster = StreamBroadcaster()
        alive = broadcaster.subscribe()
        dead = broadcaster.subscribe()
        dead.close()

        assert broadcaster.open_connections_count() == 2

        broadcaster.send("x")

        assert broadcaster.open_connections_count() == 1
        assert alive.get(timeout=1) == "x"

    def test_close_open_connections(self):
        """Test closing every subscriber."""
        broadcaster = StreamBroadcaster()
        subscribers = [broadcaster.subscribe() for _ in range(3)]

        broadcaster.close_open_connections()

        assert broadcaster.open_connections_count() == 0
        assert all(sub.closed for sub in subscribers)

    def test_subscribe_after_close(self):
        """Test that new subscribers work after a close."""
        broadcaster = StreamBroadcaster()
        broadcaster.subscribe()
        broadcaster.close_open_connections()

        subscriber = broadcaster.subscribe()
        broadcaster.send("again")

        assert broadcaster.open_connections_count() == 1
        assert subscriber.get(timeout=1) == "again"

    def test_reader_thread(self):
        """Test a reader thread receiving everything until close."""
        broadcaster = StreamBroadcaster()
        subscriber = broadcaster.subscribe()
        received = []

        reader = threading.Thread(target=lambda: received.extend(subscriber))
        reader.start()

        for i in range(100):
            broadcaster.send(str(i))
        broadcaster.close_open_connections()
        reader.join(timeout=5)

        assert not reader.is_alive()
        assert received == [str(i) for i in range(100)]
