"""
Stock Feed Kafka Producer

Thin wrapper around kafka-python's KafkaProducer:
- Scoped acquisition (context manager) with guaranteed flush and close
- Non-blocking keyed sends
- Send futures translated into DeliveryResult events for the tracker
"""

import logging
from typing import Optional

from kafka import KafkaProducer
from kafka.errors import KafkaError

from .config import ProducerSettings
from .delivery import DeliveryEventStream, DeliveryResult
from .exceptions import EnqueueError, ProducerConnectionError

logger = logging.getLogger(__name__)


class StockFeedKafkaProducer:
    """
    Publishes encoded stock updates to Kafka.

    send() only hands the message to the client's local buffer. The real
    outcome arrives later on the event stream.
    """

    def __init__(self, settings: ProducerSettings, events: Optional[DeliveryEventStream] = None):
        """
        Initialize producer wrapper. The Kafka client is created by open().

        Args:
            settings: Validated producer settings
            events: Stream receiving delivery results (created if omitted)
        """
        self.settings = settings
        self.events = events or DeliveryEventStream()

        # No client-side retries: a failed send is reported, never redelivered
        self.producer_config = {
            'bootstrap_servers': [s.strip() for s in settings.bootstrap_servers.split(',')],
            'client_id': settings.client_id,
            'key_serializer': lambda x: x.encode('utf-8') if x else None,
            'acks': settings.acks,
            'retries': 0,
            'linger_ms': settings.linger_ms,
            'max_block_ms': settings.max_block_ms,
        }

        self._producer: Optional[KafkaProducer] = None

    @property
    def is_open(self) -> bool:
        return self._producer is not None

    def open(self) -> "StockFeedKafkaProducer":
        """
        Create the Kafka client.

        Raises:
            ProducerConnectionError: If the client cannot be created
        """
        try:
            self._producer = KafkaProducer(**self.producer_config)
        except (KafkaError, ValueError) as e:
            # kafka-python raises ValueError for malformed broker addresses
            self.events.close()
            raise ProducerConnectionError(
                f"Failed to create producer: {e}",
                self.settings.bootstrap_servers,
                e
            ) from e

        logger.info(f"Kafka producer created (servers: {self.settings.bootstrap_servers})")
        return self

    def close(self, timeout: Optional[float] = None):
        """Flush pending messages, close the client and end the event stream."""
        timeout = self.settings.close_timeout if timeout is None else timeout

        if self._producer:
            try:
                self._producer.flush(timeout=timeout)  # Let in-flight sends complete
                self._producer.close(timeout=timeout)
            except Exception as e:
                logger.warning(f"Error closing Kafka producer: {e}")
            finally:
                self._producer = None
            logger.info("Kafka producer closed")

        self.events.close()

    def __enter__(self) -> "StockFeedKafkaProducer":
        return self.open()

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False

    def send(self, topic: str, key: str, value: bytes):
        """
        Enqueue a message for asynchronous delivery.

        Raises:
            EnqueueError: If the client is closed or rejects the message
        """
        if self._producer is None:
            raise EnqueueError("Producer not initialized", topic)

        try:
            future = self._producer.send(topic, value=value, key=key)
        except KafkaError as e:
            raise EnqueueError(f"Failed to produce message: {e}", topic, e) from e

        future.add_callback(self._on_delivered, topic, key)
        future.add_errback(self._on_failed, topic, key)
        return future

    def _on_delivered(self, topic: str, key: str, record_metadata):
        self.events.publish(DeliveryResult(
            success=True,
            topic=record_metadata.topic or topic,
            key=key,
            partition=record_metadata.partition,
            offset=record_metadata.offset
        ))

    def _on_failed(self, topic: str, key: str, error):
        self.events.publish(DeliveryResult(
            success=False,
            topic=topic,
            key=key,
            error_message=f"{type(error).__name__}: {error}"
        ))
