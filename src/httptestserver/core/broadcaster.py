"""
=============================================================================
STREAM BROADCASTER
=============================================================================

Fan-out delivery for streamed resources. One resource, N open connections:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        BROADCAST FLOW                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   test code                                                          │
    │   resource.send_line("tick")                                         │
    │        │                                                             │
    │        ▼                                                             │
    │   StreamBroadcaster                                                  │
    │        │                                                             │
    │        ├──► Subscriber #1 (Queue) ──► connection thread ──► socket   │
    │        ├──► Subscriber #2 (Queue) ──► connection thread ──► socket   │
    │        └──► Subscriber #3 (closed) ✗  pruned on this send            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Each subscriber is a FIFO queue read by exactly one connection thread, so
two sends are always written to a given socket in the order they were made.

=============================================================================
CLOSING
=============================================================================

A subscriber is closed from one of two sides:

    broadcaster side:  close_open_connections()
                       └── puts the end-of-stream marker, the connection
                           thread drains the queue, sees it, closes socket

    connection side:   socket write failed (client went away)
                       └── connection thread closes its subscriber, the
                           next send() notices and prunes it

=============================================================================
"""

import logging
import queue
import threading
from typing import Iterator, List, Optional


logger = logging.getLogger(__name__)


# Marker put on a subscriber's queue to tell its reader the stream is over
_END_OF_STREAM = None


class Subscriber:
    """
    One open streamed connection's delivery channel.

    Iterate it to receive chunks; iteration stops once the subscriber is
    closed and every chunk queued before the close has been consumed.
    """

    def __init__(self):
        self._queue: "queue.Queue[Optional[str]]" = queue.Queue()
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def deliver(self, data: str) -> bool:
        """
        Queue a chunk for the connection.

        Returns:
            False if the subscriber is already closed (the chunk is dropped).
        """
        if self._closed.is_set():
            return False
        self._queue.put(data)
        return True

    def close(self):
        """Close the channel. Safe to call from either side, more than once."""
        if self._closed.is_set():
            return
        self._closed.set()
        self._queue.put(_END_OF_STREAM)

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """
        Block until the next chunk arrives.

        Returns:
            The chunk, or None once the stream has ended.

        Raises:
            queue.Empty: If timeout elapses first.
        """
        return self._queue.get(timeout=timeout)

    def __iter__(self) -> Iterator[str]:
        while True:
            chunk = self._queue.get()
            if chunk is _END_OF_STREAM:
                return
            yield chunk


class StreamBroadcaster:
    """
    Thread-safe list of subscribers for one resource.

    Usage:
        broadcaster = StreamBroadcaster()
        sub = broadcaster.subscribe()

        broadcaster.send("data: 1\\n")
        broadcaster.send_line("data: 2")
        broadcaster.close_open_connections()

        list(sub)   # ["data: 1\\n", "data: 2\\n"]
    """

    def __init__(self):
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()  # Protects _subscribers

    def subscribe(self) -> Subscriber:
        """Register a new subscriber and return it immediately."""
        subscriber = Subscriber()
        with self._lock:
            self._subscribers.append(subscriber)
        return subscriber

    def send(self, data: str):
        """
        Push data to every live subscriber.

        Subscribers that fail to accept it are removed before returning.
        """
        with self._lock:
            alive = [sub for sub in self._subscribers if sub.deliver(data)]
            pruned = len(self._subscribers) - len(alive)
            self._subscribers = alive

        if pruned:
            logger.debug(f"Pruned {pruned} dead stream subscriber(s)")

    def send_line(self, data: str):
        """send() with a trailing newline."""
        self.send(data + "\n")

    def close_open_connections(self):
        """Close and forget every subscriber."""
        with self._lock:
            subscribers, self._subscribers = self._subscribers, []

        for subscriber in subscribers:
            subscriber.close()

        if subscribers:
            logger.debug(f"Closed {len(subscribers)} stream connection(s)")

    def open_connections_count(self) -> int:
        """Number of subscribers currently registered."""
        with self._lock:
            return len(self._subscribers)
