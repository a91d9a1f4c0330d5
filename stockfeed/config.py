"""
Stock Feed Configuration

Defines the tickers the feed may publish, the output formats and the producer
settings. Defaults come from the environment (and a .env file when present)
so containers can be configured without command-line flags.
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

from dotenv import load_dotenv

from .exceptions import ConfigurationError

# Load environment variables
load_dotenv()

# Tickers double as Kafka topic names
ALLOWED_TICKERS = ("STK_ONE", "STK_TWO")

# An interval of 1000 // rate must stay above 0 ms
MAX_RATE_PER_SECOND = 1000

# Values kafka-python accepts for acks
ALLOWED_ACKS = (0, 1, -1, 'all')


class OutputFormat(Enum):
    """Wire encoding of published messages."""
    BINARY = "binary"
    TEXT = "text"


# Names accepted by earlier releases of the producer
FORMAT_ALIASES = {
    "protobuf": OutputFormat.BINARY,
    "json": OutputFormat.TEXT,
}

FORMAT_CHOICES = tuple(f.value for f in OutputFormat) + tuple(FORMAT_ALIASES)


def parse_output_format(name: Optional[str]) -> OutputFormat:
    """Resolve a format name (or alias) to an OutputFormat, case-insensitively."""
    if isinstance(name, OutputFormat):
        return name

    normalized = (name or "").strip().lower()
    if normalized in FORMAT_ALIASES:
        return FORMAT_ALIASES[normalized]

    try:
        return OutputFormat(normalized)
    except ValueError:
        raise ConfigurationError(
            f"Invalid format name '{name}'",
            "format",
            name,
            ", ".join(FORMAT_CHOICES)
        ) from None


def parse_acks(value) -> Union[int, str]:
    """Resolve an acks setting: 'all' or one of 0, 1, -1."""
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized == 'all':
            return 'all'
        try:
            value = int(normalized)
        except ValueError:
            value = normalized

    if isinstance(value, bool) or value not in ALLOWED_ACKS:
        raise ConfigurationError(
            f"Invalid acks setting '{value}'",
            "acks",
            value,
            ", ".join(str(a) for a in ALLOWED_ACKS)
        )
    return value


def parse_bootstrap_servers(servers: Optional[str]) -> Tuple[str, ...]:
    """
    Split a broker list into host[:port] entries, checking each port.

    Bare hosts and bare IPv6 addresses are accepted; kafka-python applies
    its default port to them.

    Raises:
        ConfigurationError: If the list is empty or an entry is malformed
    """
    expected = "host:port[,host:port...]"
    if not servers or not servers.strip():
        raise ConfigurationError("Broker address is required", "broker", servers, expected)

    entries = tuple(entry.strip() for entry in servers.split(','))
    for entry in entries:
        if entry.startswith('['):
            host, _, port = entry[1:].partition(']')
            port = port[1:] if port.startswith(':') else port
        elif entry.count(':') == 1:
            host, port = entry.split(':')
        else:
            host, port = entry, ''

        if not host:
            raise ConfigurationError(f"Invalid broker address '{entry}'", "broker", servers, expected)

        if port or entry.endswith(':'):
            if not port.isdigit() or not 1 <= int(port) <= 65535:
                raise ConfigurationError(
                    f"Invalid broker port in '{entry}'", "broker", servers, expected
                )

    return entries


@dataclass
class ProducerSettings:
    """Validated settings for one producer run."""
    ticker: str
    rate_per_second: int
    bootstrap_servers: str
    output_format: OutputFormat = OutputFormat.BINARY

    # Kafka client tuning
    client_id: str = "stockfeed-producer"
    acks: Union[int, str] = 1
    linger_ms: int = 5
    max_block_ms: int = 100  # Enqueue must not stall the tick loop
    close_timeout: float = 30.0

    @property
    def interval_ms(self) -> int:
        """Tick interval in whole milliseconds (integer division)."""
        return 1000 // self.rate_per_second

    def validate(self) -> "ProducerSettings":
        """
        Check every setting, raising on the first invalid one.

        Returns:
            self, so calls can be chained

        Raises:
            ConfigurationError: If any setting is invalid
        """
        if self.ticker not in ALLOWED_TICKERS:
            raise ConfigurationError(
                f"Invalid ticker name '{self.ticker}'",
                "ticker",
                self.ticker,
                ", ".join(ALLOWED_TICKERS)
            )

        if isinstance(self.rate_per_second, bool) or not isinstance(self.rate_per_second, int):
            raise ConfigurationError(
                f"Rate must be an integer, got {self.rate_per_second!r}",
                "rate",
                self.rate_per_second,
                f"1..{MAX_RATE_PER_SECOND}"
            )

        if not 1 <= self.rate_per_second <= MAX_RATE_PER_SECOND:
            raise ConfigurationError(
                f"Rate {self.rate_per_second} msg/sec is out of range",
                "rate",
                self.rate_per_second,
                f"1..{MAX_RATE_PER_SECOND}"
            )

        parse_bootstrap_servers(self.bootstrap_servers)
        self.acks = parse_acks(self.acks)
        self.output_format = parse_output_format(self.output_format)
        return self

    @classmethod
    def from_env(cls, **overrides) -> "ProducerSettings":
        """
        Build settings from environment variables, then apply overrides.

        Overrides that are None fall back to the environment value.
        """
        env = {
            'ticker': os.getenv('STOCKFEED_TICKER', ''),
            'rate_per_second': int(os.getenv('STOCKFEED_RATE', '0') or 0),
            'bootstrap_servers': os.getenv('KAFKA_BOOTSTRAP_SERVERS', ''),
            'output_format': os.getenv('STOCKFEED_FORMAT', OutputFormat.BINARY.value),
            'client_id': os.getenv('STOCKFEED_CLIENT_ID', 'stockfeed-producer'),
            'acks': parse_acks(os.getenv('STOCKFEED_ACKS', '1')),
            'linger_ms': int(os.getenv('STOCKFEED_LINGER_MS', '5')),
            'max_block_ms': int(os.getenv('STOCKFEED_MAX_BLOCK_MS', '100')),
            'close_timeout': float(os.getenv('STOCKFEED_CLOSE_TIMEOUT', '30')),
        }

        for key, value in overrides.items():
            if value is not None:
                env[key] = value

        return cls(**env)
