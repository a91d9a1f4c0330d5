"""
Paced publishing loop.

One message per tick: step the price process, stamp the update with the
wall-clock time in nanoseconds, encode it and hand it to the producer.
Encoding and enqueue failures drop the single message; the loop carries on.
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .encoders import MessageEncoder, StockUpdate
from .exceptions import EncodingError, EnqueueError
from .price_process import PriceProcess

logger = logging.getLogger(__name__)


@dataclass
class PublisherStatistics:
    """Production counters, owned by the publishing thread."""
    ticks: int = 0
    enqueued: int = 0
    encoding_failures: int = 0
    enqueue_failures: int = 0
    bytes_enqueued: int = 0

    @property
    def dropped(self) -> int:
        return self.encoding_failures + self.enqueue_failures


class Ticker:
    """
    Fixed-rate deadlines on the monotonic clock.

    Deadlines sit at start + n * interval. When the caller falls behind by
    whole intervals the missed ticks are skipped, not replayed in a burst.
    """

    def __init__(self, interval_ms: int, stop_event: threading.Event,
                 monotonic: Callable[[], float] = time.monotonic):
        self.interval = interval_ms / 1000.0
        self._stop_event = stop_event
        self._monotonic = monotonic
        self._next = monotonic() + self.interval

    def wait(self) -> bool:
        """
        Block until the next deadline.

        Returns:
            False if the stop event was set while waiting
        """
        remaining = self._next - self._monotonic()
        if remaining > 0:
            if self._stop_event.wait(remaining):
                return False
        elif self._stop_event.is_set():
            return False

        now = self._monotonic()
        self._next += self.interval
        if self._next <= now and self.interval > 0:
            skipped = int((now - self._next) // self.interval) + 1
            self._next += skipped * self.interval
            logger.debug(f"Ticker fell behind, skipped {skipped} tick(s)")
        return True


class Publisher:
    """Produces and dispatches one stock update per tick until stopped."""

    def __init__(
        self,
        producer,
        encoder: MessageEncoder,
        ticker: str,
        rate_per_second: int,
        price_process: Optional[PriceProcess] = None,
        clock: Callable[[], int] = time.time_ns,
        stop_event: Optional[threading.Event] = None
    ):
        """
        Args:
            producer: Object with send(topic, key, value), normally a
                StockFeedKafkaProducer
            encoder: Encoder for the configured output format
            ticker: Symbol, also used as topic and message key
            rate_per_second: Target messages per second
            price_process: Price source (a freshly seeded one if omitted)
            clock: Wall clock in nanoseconds since epoch
            stop_event: Cancellation flag consulted by run()
        """
        self.producer = producer
        self.encoder = encoder
        self.ticker = ticker
        self.rate_per_second = rate_per_second
        # Integer division: 7 msg/sec gives 142 ms, not 142.857 ms
        self.interval_ms = 1000 // rate_per_second
        self.price_process = price_process or PriceProcess()
        self._clock = clock
        self.stop_event = stop_event or threading.Event()
        self.stats = PublisherStatistics()

    def stop(self):
        """Ask run() to return before its next tick."""
        self.stop_event.set()

    def run(self, max_ticks: Optional[int] = None) -> PublisherStatistics:
        """
        Publish on every tick until stopped or max_ticks is reached.

        Returns:
            Final statistics
        """
        logger.info(f"Starting production loop (Interval: {self.interval_ms}ms)... Press Ctrl+C to stop.")

        ticker = Ticker(self.interval_ms, self.stop_event)
        while max_ticks is None or self.stats.ticks < max_ticks:
            if not ticker.wait():
                break
            self.tick()

        logger.info(
            f"Production loop stopped - ticks: {self.stats.ticks}, "
            f"enqueued: {self.stats.enqueued}, dropped: {self.stats.dropped}"
        )
        return self.stats

    def tick(self) -> bool:
        """
        Produce and enqueue one message.

        Returns:
            True if the message was accepted by the producer
        """
        self.stats.ticks += 1

        price = self.price_process.step()
        update = StockUpdate(ticker=self.ticker, timestamp=self._clock(), price=price)

        try:
            payload = self.encoder.encode(update)
        except EncodingError as e:
            self.stats.encoding_failures += 1
            logger.error(f"Failed to encode {self.encoder.output_format.value} message: {e}")
            return False

        try:
            self.producer.send(self.ticker, key=self.ticker, value=payload)
        except EnqueueError as e:
            self.stats.enqueue_failures += 1
            logger.error(f"Failed to produce message: {e}")
            return False

        self.stats.enqueued += 1
        self.stats.bytes_enqueued += len(payload)
        logger.debug(
            f"Produced {self.encoder.output_format.value.upper()} message to topic {self.ticker}: "
            f"Price: {price:.2f} (Nanos: {update.timestamp})"
        )
        return True
