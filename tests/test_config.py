#!/usr/bin/env python3
"""
Configuration tests - validation and environment defaults.
"""

import os
import unittest
from unittest.mock import patch

from stockfeed.config import (
    ALLOWED_TICKERS,
    OutputFormat,
    ProducerSettings,
    parse_output_format,
)
from stockfeed.exceptions import ConfigurationError


def make_settings(**overrides):
    values = {
        'ticker': 'STK_ONE',
        'rate_per_second': 10,
        'bootstrap_servers': 'localhost:9092',
        'output_format': 'binary',
    }
    values.update(overrides)
    return ProducerSettings(**values)


class TestParseOutputFormat(unittest.TestCase):

    def test_canonical_names(self):
        self.assertIs(parse_output_format('binary'), OutputFormat.BINARY)
        self.assertIs(parse_output_format('text'), OutputFormat.TEXT)

    def test_aliases(self):
        self.assertIs(parse_output_format('protobuf'), OutputFormat.BINARY)
        self.assertIs(parse_output_format('json'), OutputFormat.TEXT)

    def test_case_insensitive(self):
        self.assertIs(parse_output_format('JSON'), OutputFormat.TEXT)
        self.assertIs(parse_output_format(' Binary '), OutputFormat.BINARY)

    def test_enum_passthrough(self):
        self.assertIs(parse_output_format(OutputFormat.TEXT), OutputFormat.TEXT)

    def test_unknown_format(self):
        with self.assertRaises(ConfigurationError) as ctx:
            parse_output_format('xml')
        self.assertEqual(ctx.exception.field_name, 'format')
        self.assertIn("Invalid format name 'xml'", str(ctx.exception))

    def test_missing_format(self):
        with self.assertRaises(ConfigurationError):
            parse_output_format(None)


class TestProducerSettings(unittest.TestCase):

    def test_valid_settings(self):
        settings = make_settings(output_format='json').validate()
        self.assertIs(settings.output_format, OutputFormat.TEXT)
        self.assertEqual(settings.interval_ms, 100)

    def test_allowed_tickers(self):
        self.assertEqual(ALLOWED_TICKERS, ('STK_ONE', 'STK_TWO'))
        for ticker in ALLOWED_TICKERS:
            make_settings(ticker=ticker).validate()

    def test_invalid_ticker(self):
        with self.assertRaises(ConfigurationError) as ctx:
            make_settings(ticker='AAPL').validate()
        self.assertEqual(ctx.exception.field_name, 'ticker')
        self.assertIn('STK_ONE, STK_TWO', str(ctx.exception))

    def test_non_positive_rate(self):
        for rate in (0, -5):
            with self.assertRaises(ConfigurationError) as ctx:
                make_settings(rate_per_second=rate).validate()
            self.assertEqual(ctx.exception.field_name, 'rate')

    def test_rate_above_millisecond_resolution(self):
        make_settings(rate_per_second=1000).validate()
        with self.assertRaises(ConfigurationError):
            make_settings(rate_per_second=1001).validate()

    def test_non_integer_rate(self):
        with self.assertRaises(ConfigurationError):
            make_settings(rate_per_second=2.5).validate()

    def test_missing_broker(self):
        for broker in ('', '   ', None):
            with self.assertRaises(ConfigurationError) as ctx:
                make_settings(bootstrap_servers=broker).validate()
            self.assertEqual(ctx.exception.field_name, 'broker')

    def test_broker_with_bad_port(self):
        for broker in ('localhost:notaport', 'localhost:0', 'localhost:70000',
                       'localhost:', 'kafka:9092,other:abc', ':9092', 'kafka:9092,'):
            with self.assertRaises(ConfigurationError) as ctx:
                make_settings(bootstrap_servers=broker).validate()
            self.assertEqual(ctx.exception.field_name, 'broker')

    def test_broker_forms_accepted(self):
        for broker in ('localhost:9092', 'a:9092, b:9093', 'kafka', '[::1]:9092', '[::1]'):
            make_settings(bootstrap_servers=broker).validate()

    def test_acks_values(self):
        self.assertEqual(make_settings(acks='all').validate().acks, 'all')
        self.assertEqual(make_settings(acks='ALL').validate().acks, 'all')
        self.assertEqual(make_settings(acks='-1').validate().acks, -1)
        self.assertEqual(make_settings(acks=0).validate().acks, 0)

    def test_invalid_acks(self):
        for acks in ('some', 2, True):
            with self.assertRaises(ConfigurationError) as ctx:
                make_settings(acks=acks).validate()
            self.assertEqual(ctx.exception.field_name, 'acks')

    def test_acks_all_from_env(self):
        with patch.dict(os.environ, {'STOCKFEED_ACKS': 'all'}):
            settings = ProducerSettings.from_env()
        self.assertEqual(settings.acks, 'all')

    def test_interval_truncates(self):
        self.assertEqual(make_settings(rate_per_second=7).interval_ms, 142)
        self.assertEqual(make_settings(rate_per_second=3).interval_ms, 333)
        self.assertEqual(make_settings(rate_per_second=1).interval_ms, 1000)

    def test_from_env(self):
        env = {
            'STOCKFEED_TICKER': 'STK_TWO',
            'STOCKFEED_RATE': '25',
            'KAFKA_BOOTSTRAP_SERVERS': 'kafka:9092',
            'STOCKFEED_FORMAT': 'text',
            'STOCKFEED_MAX_BLOCK_MS': '50',
        }
        with patch.dict(os.environ, env):
            settings = ProducerSettings.from_env().validate()

        self.assertEqual(settings.ticker, 'STK_TWO')
        self.assertEqual(settings.rate_per_second, 25)
        self.assertEqual(settings.bootstrap_servers, 'kafka:9092')
        self.assertIs(settings.output_format, OutputFormat.TEXT)
        self.assertEqual(settings.max_block_ms, 50)

    def test_overrides_beat_env(self):
        with patch.dict(os.environ, {'STOCKFEED_TICKER': 'STK_TWO', 'STOCKFEED_RATE': '25'}):
            settings = ProducerSettings.from_env(ticker='STK_ONE', rate_per_second=None)

        self.assertEqual(settings.ticker, 'STK_ONE')
        self.assertEqual(settings.rate_per_second, 25)


if __name__ == '__main__':
    unittest.main()
