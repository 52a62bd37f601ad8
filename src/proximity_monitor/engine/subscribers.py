"""
Subscriber handles.

A subscriber is anything that can take a serialized snapshot (or error
payload) and report whether its underlying connection has gone away.
The scheduler owns subscribers while they are attached and only ever
calls send(); it never inspects or mutates them otherwise.
"""

import queue
import threading
from typing import Optional


class Subscriber:
    """Base handle. Subclasses implement send()."""

    @property
    def closed(self) -> bool:
        return False

    def send(self, message: str) -> None:
        raise NotImplementedError

    def close(self) -> None:
        """Mark the handle closed; later sends must be no-ops."""


class QueueSubscriber(Subscriber):
    """
    Thread-safe mailbox between the event loop and a connection thread.

    send() is called on the event loop; the HTTP handler thread blocks in
    get(). When the mailbox is full the oldest message is dropped, so a
    slow reader always catches up to the latest snapshot.
    """

    def __init__(self, maxsize: int = 8):
        self._queue: queue.Queue = queue.Queue(maxsize=maxsize)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def send(self, message: str) -> None:
        if self.closed:
            return
        while True:
            try:
                self._queue.put_nowait(message)
                return
            except queue.Full:
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def get(self, timeout: Optional[float] = None) -> Optional[str]:
        """Next message, or None on timeout or after close()."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def close(self) -> None:
        self._closed.set()
        # Wake a reader blocked in get()
        try:
            self._queue.put_nowait(None)
        except queue.Full:
            pass
