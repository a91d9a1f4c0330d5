#!/usr/bin/env python3
"""
Synthetic stock feed producer - command line entry point.

Usage:
    stockfeed --ticker STK_ONE --rate 10 --broker localhost:9092 --format binary
    stockfeed --ticker STK_TWO --rate 7 --broker kafka:9092 --format json -v
"""

import logging
import signal
import sys
import threading
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from .config import ALLOWED_TICKERS, FORMAT_CHOICES, ProducerSettings
from .delivery import DeliveryTracker
from .encoders import get_encoder
from .exceptions import ConfigurationError, ProducerConnectionError
from .kafka_producer import StockFeedKafkaProducer
from .price_process import PriceProcess
from .publisher import Publisher, PublisherStatistics

logger = logging.getLogger(__name__)

console = Console(stderr=True)


def setup_logging(level: str = 'INFO'):
    """Configure process-wide logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    # kafka-python is chatty at INFO
    logging.getLogger('kafka').setLevel(logging.WARNING)


def make_banner(settings: ProducerSettings) -> Table:
    """Startup summary table."""
    table = Table(title="Starting Kafka Producer")
    table.add_column("Setting")
    table.add_column("Value")

    table.add_row("Ticker/Topic", settings.ticker)
    table.add_row("Broker Address", settings.bootstrap_servers)
    table.add_row("Production Rate", f"{settings.rate_per_second} msg/sec")
    table.add_row("Interval", f"{settings.interval_ms} ms")
    table.add_row("Output Format", settings.output_format.value.upper())
    return table


def install_signal_handlers(stop_event: threading.Event):
    """Route SIGINT and SIGTERM to the stop event."""
    def signal_handler(sig, frame):
        logger.info(f"Received signal {signal.Signals(sig).name}, shutting down")
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)


def run_feed(
    settings: ProducerSettings,
    stop_event: Optional[threading.Event] = None,
    max_messages: Optional[int] = None,
    price_process: Optional[PriceProcess] = None
) -> PublisherStatistics:
    """
    Run the producer until stopped.

    The Kafka client is released on every exit path. After the loop ends the
    client is flushed and closed, which closes the event stream, and the
    delivery tracker is joined once it has drained.

    Raises:
        ProducerConnectionError: If the Kafka client cannot be created
    """
    stop_event = stop_event or threading.Event()
    encoder = get_encoder(settings.output_format)

    with StockFeedKafkaProducer(settings) as producer:
        tracker = DeliveryTracker(producer.events).start()
        try:
            publisher = Publisher(
                producer,
                encoder,
                settings.ticker,
                settings.rate_per_second,
                price_process=price_process,
                stop_event=stop_event
            )
            stats = publisher.run(max_ticks=max_messages)
        finally:
            producer.close()
            if not tracker.join(timeout=settings.close_timeout):
                logger.warning("Delivery tracker did not finish draining")

    return stats


@click.command()
@click.option('--ticker', envvar='STOCKFEED_TICKER',
              help=f"The ticker name, also used as the Kafka topic. One of: {', '.join(ALLOWED_TICKERS)}.")
@click.option('--rate', type=int, envvar='STOCKFEED_RATE',
              help='Production rate in messages per second.')
@click.option('--broker', envvar='KAFKA_BOOTSTRAP_SERVERS',
              help='Kafka broker address (e.g. my-kafka-service:9092).')
@click.option('--format', 'output_format', envvar='STOCKFEED_FORMAT',
              help=f"Output format. One of: {', '.join(FORMAT_CHOICES)}.")
@click.option('--max-messages', type=click.IntRange(min=1), default=None,
              help='Stop after this many ticks (default: run until interrupted).')
@click.option('--log-level', default='INFO',
              type=click.Choice(['DEBUG', 'INFO', 'WARNING', 'ERROR'], case_sensitive=False))
@click.option('-v', '--verbose', is_flag=True, help='Shortcut for --log-level DEBUG.')
def main(ticker, rate, broker, output_format, max_messages, log_level, verbose):
    """Publish synthetic mean-reverting stock prices to Kafka."""
    setup_logging('DEBUG' if verbose else log_level)

    try:
        settings = ProducerSettings.from_env(
            ticker=ticker,
            rate_per_second=rate,
            bootstrap_servers=broker,
            output_format=output_format
        ).validate()
    except (ConfigurationError, ValueError) as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    console.print(make_banner(settings))

    stop_event = threading.Event()
    install_signal_handlers(stop_event)

    try:
        stats = run_feed(settings, stop_event=stop_event, max_messages=max_messages)
    except ProducerConnectionError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    logger.info(
        f"Producer stopped - enqueued {stats.enqueued} messages "
        f"({stats.bytes_enqueued} bytes), dropped {stats.dropped}"
    )


if __name__ == "__main__":
    main()
