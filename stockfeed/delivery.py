"""
Delivery report handling.

The Kafka client completes sends asynchronously. Each completion becomes a
DeliveryResult on a DeliveryEventStream, which the DeliveryTracker drains on
its own thread until the stream is closed at shutdown.
"""

import logging
import queue
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of one asynchronous Kafka send."""
    success: bool
    topic: str
    key: Optional[str] = None
    partition: Optional[int] = None
    offset: Optional[int] = None
    error_message: Optional[str] = None


@dataclass
class DeliveryStatistics:
    """Delivery counters kept by the tracker thread."""
    delivered: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.delivered + self.failed

    @property
    def success_rate(self) -> float:
        """Calculate delivery success rate."""
        if self.total == 0:
            return 0.0
        return self.delivered / self.total


_CLOSED = object()


class DeliveryEventStream:
    """
    Thread-safe FIFO of delivery results.

    Results come out in completion order. Iteration blocks for the next
    result and stops once close() has been called and the backlog drained.
    """

    def __init__(self):
        self._queue: queue.Queue = queue.Queue()
        self._closed = False
        self._lock = threading.Lock()

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, result: DeliveryResult):
        """Append a result. Results published after close() are discarded."""
        with self._lock:
            if self._closed:
                logger.warning(f"Delivery result after stream close discarded: {result}")
                return
            self._queue.put(result)

    def close(self):
        """Mark the end of the stream. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._queue.put(_CLOSED)

    def get(self, timeout: Optional[float] = None) -> Optional[DeliveryResult]:
        """
        Next result, or None when the stream is closed.

        Raises:
            queue.Empty: If timeout expires first
        """
        item = self._queue.get(timeout=timeout)
        if item is _CLOSED:
            # Leave the marker for any other reader
            self._queue.put(_CLOSED)
            return None
        return item

    def __iter__(self) -> Iterator[DeliveryResult]:
        while True:
            result = self.get()
            if result is None:
                return
            yield result


class DeliveryTracker:
    """
    Drains delivery results and logs each outcome.

    Runs on a daemon thread for the lifetime of the producer and shares
    nothing with the publishing loop except the event stream.
    """

    def __init__(self, events: DeliveryEventStream):
        self.events = events
        self.stats = DeliveryStatistics()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> "DeliveryTracker":
        """Start draining on a background thread."""
        self._thread = threading.Thread(target=self.run, name="delivery-tracker", daemon=True)
        self._thread.start()
        logger.info("Delivery tracker started")
        return self

    def join(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the tracker to finish.

        Returns:
            True if the tracker thread has exited
        """
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run(self):
        """Consume results until the stream is closed."""
        for result in self.events:
            self.handle(result)

        logger.info(
            f"Delivery tracker stopped - delivered: {self.stats.delivered}, "
            f"failed: {self.stats.failed}"
        )

    def handle(self, result: DeliveryResult):
        """Classify and log one delivery result."""
        if result.success:
            self.stats.delivered += 1
            logger.info(
                f"Delivered {result.key} to {result.topic} "
                f"[partition {result.partition}, offset {result.offset}]"
            )
        else:
            self.stats.failed += 1
            logger.error(
                f"Delivery failed for {result.key} on topic {result.topic}: "
                f"{result.error_message}"
            )
