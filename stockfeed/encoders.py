"""
Message encoders for stock updates.

Two wire formats, chosen once per run:

- binary: Protocol Buffers ``StockUpdate { int64 timestamp = 1; int32 price = 2; }``
  with the price in integer cents (lossy)
- text: compact JSON ``{"ticker": ..., "timestamp": ..., "price": ...}``
  with the full-precision price
"""

import json
import math
from dataclasses import dataclass
from typing import Dict, Tuple, Type

from google.protobuf import descriptor_pb2, descriptor_pool
from google.protobuf.message_factory import GetMessageClass

from .config import OutputFormat
from .exceptions import EncodingError

INT32_MIN = -2 ** 31
INT32_MAX = 2 ** 31 - 1
INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1


@dataclass(frozen=True)
class StockUpdate:
    """One price observation, as produced per tick."""
    ticker: str
    timestamp: int  # Nanoseconds since epoch
    price: float


@dataclass(frozen=True)
class EncodedMessage:
    """Payload with its Kafka routing."""
    topic: str
    key: str
    value: bytes


def _build_stock_update_class():
    """Register the StockUpdate schema in a private pool and return its class."""
    field_proto = descriptor_pb2.FieldDescriptorProto

    file_proto = descriptor_pb2.FileDescriptorProto(
        name='stockfeed/stock_update.proto',
        package='stockfeed',
        syntax='proto3'
    )
    message_proto = file_proto.message_type.add(name='StockUpdate')
    message_proto.field.add(
        name='timestamp', number=1,
        type=field_proto.TYPE_INT64, label=field_proto.LABEL_OPTIONAL
    )
    message_proto.field.add(
        name='price', number=2,
        type=field_proto.TYPE_INT32, label=field_proto.LABEL_OPTIONAL
    )

    pool = descriptor_pool.DescriptorPool()
    pool.AddSerializedFile(file_proto.SerializeToString())
    return GetMessageClass(pool.FindMessageTypeByName('stockfeed.StockUpdate'))


StockUpdateMessage = _build_stock_update_class()


def price_to_cents(price: float) -> int:
    """
    Scale a price to integer cents.

    Rounds to the nearest integer; exact halves go to the even neighbour
    (Python's round). 123.45 -> 12345, 100.004 -> 10000.
    """
    return round(price * 100)


class MessageEncoder:
    """Base class: turns a StockUpdate into bytes."""

    output_format: OutputFormat

    def encode(self, update: StockUpdate) -> bytes:
        raise NotImplementedError

    def to_message(self, update: StockUpdate) -> EncodedMessage:
        """Encode and attach routing (topic and key are both the ticker)."""
        return EncodedMessage(
            topic=update.ticker,
            key=update.ticker,
            value=self.encode(update)
        )


class BinaryEncoder(MessageEncoder):
    """Protobuf encoding with the price as int32 cents."""

    output_format = OutputFormat.BINARY

    def encode(self, update: StockUpdate) -> bytes:
        """
        Encode a stock update as a protobuf StockUpdate message.

        Raises:
            EncodingError: If the price is not finite or its cents value does
                not fit a signed 32-bit integer, or the timestamp does not fit
                a signed 64-bit integer
        """
        if not math.isfinite(update.price):
            raise EncodingError(
                f"Price {update.price} is not a finite number",
                update.ticker, "price", update.price, self.output_format.value
            )

        cents = price_to_cents(update.price)
        if not INT32_MIN <= cents <= INT32_MAX:
            raise EncodingError(
                f"Price {update.price} ({cents} cents) exceeds int32 range",
                update.ticker, "price", update.price, self.output_format.value
            )

        if not INT64_MIN <= update.timestamp <= INT64_MAX:
            raise EncodingError(
                f"Timestamp {update.timestamp} exceeds int64 range",
                update.ticker, "timestamp", update.timestamp, self.output_format.value
            )

        message = StockUpdateMessage(timestamp=update.timestamp, price=cents)
        return message.SerializeToString()

    @staticmethod
    def decode(payload: bytes) -> Tuple[int, int]:
        """Parse a payload back into (timestamp_ns, price_cents)."""
        message = StockUpdateMessage()
        message.ParseFromString(payload)
        return message.timestamp, message.price


class TextEncoder(MessageEncoder):
    """Compact JSON encoding with the full-precision price."""

    output_format = OutputFormat.TEXT

    def encode(self, update: StockUpdate) -> bytes:
        """
        Encode a stock update as a JSON object.

        Raises:
            EncodingError: If the price is NaN or infinite
        """
        if not math.isfinite(update.price):
            raise EncodingError(
                f"Price {update.price} is not a finite number",
                update.ticker, "price", update.price, self.output_format.value
            )

        record = {
            'ticker': update.ticker,
            'timestamp': update.timestamp,
            'price': update.price,
        }
        return json.dumps(record, separators=(',', ':'), allow_nan=False).encode('utf-8')


_ENCODERS: Dict[OutputFormat, Type[MessageEncoder]] = {
    OutputFormat.BINARY: BinaryEncoder,
    OutputFormat.TEXT: TextEncoder,
}


def get_encoder(output_format: OutputFormat) -> MessageEncoder:
    """Return the encoder for an output format."""
    return _ENCODERS[output_format]()
