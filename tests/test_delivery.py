#!/usr/bin/env python3
"""
Delivery tracker tests - stream semantics, classification, shutdown.
"""

import logging
import queue
import threading
import unittest

from stockfeed.delivery import (
    DeliveryEventStream,
    DeliveryResult,
    DeliveryStatistics,
    DeliveryTracker,
)

OK = DeliveryResult(success=True, topic='STK_ONE', key='STK_ONE', partition=0, offset=1)
FAILED = DeliveryResult(success=False, topic='STK_ONE', key='STK_ONE',
                        error_message='KafkaTimeoutError: Batch expired')


class TestDeliveryEventStream(unittest.TestCase):

    def test_fifo_until_closed(self):
        events = DeliveryEventStream()
        events.publish(OK)
        events.publish(FAILED)
        events.close()

        self.assertEqual(list(events), [OK, FAILED])

    def test_publish_after_close_discarded(self):
        events = DeliveryEventStream()
        events.close()
        events.publish(OK)

        self.assertTrue(events.closed)
        self.assertEqual(list(events), [])

    def test_close_is_idempotent(self):
        events = DeliveryEventStream()
        events.close()
        events.close()
        self.assertIsNone(events.get(timeout=0.1))
        self.assertIsNone(events.get(timeout=0.1))

    def test_get_times_out(self):
        events = DeliveryEventStream()
        with self.assertRaises(queue.Empty):
            events.get(timeout=0.01)

    def test_cross_thread_delivery(self):
        events = DeliveryEventStream()
        received = []

        def consume():
            received.extend(events)

        consumer = threading.Thread(target=consume)
        consumer.start()
        for _ in range(100):
            events.publish(OK)
        events.close()
        consumer.join(timeout=5)

        self.assertFalse(consumer.is_alive())
        self.assertEqual(len(received), 100)


class TestDeliveryStatistics(unittest.TestCase):

    def test_success_rate(self):
        self.assertEqual(DeliveryStatistics().success_rate, 0.0)
        self.assertEqual(DeliveryStatistics(delivered=3, failed=1).success_rate, 0.75)


class TestDeliveryTracker(unittest.TestCase):

    def test_counts_outcomes(self):
        events = DeliveryEventStream()
        tracker = DeliveryTracker(events)

        for result in (OK, OK, FAILED):
            events.publish(result)
        events.close()
        tracker.run()

        self.assertEqual(tracker.stats.delivered, 2)
        self.assertEqual(tracker.stats.failed, 1)

    def test_failure_logged_with_ticker_and_cause(self):
        tracker = DeliveryTracker(DeliveryEventStream())

        with self.assertLogs('stockfeed.delivery', level='ERROR') as logs:
            tracker.handle(FAILED)

        self.assertIn('STK_ONE', logs.output[0])
        self.assertIn('Batch expired', logs.output[0])

    def test_success_logged_at_info(self):
        tracker = DeliveryTracker(DeliveryEventStream())

        with self.assertLogs('stockfeed.delivery', level='INFO') as logs:
            tracker.handle(OK)

        self.assertEqual(logs.records[0].levelno, logging.INFO)

    def test_thread_stops_when_stream_closes(self):
        events = DeliveryEventStream()
        tracker = DeliveryTracker(events).start()
        self.assertTrue(tracker.is_alive())

        events.publish(OK)
        events.publish(FAILED)
        events.close()

        self.assertTrue(tracker.join(timeout=5))
        self.assertFalse(tracker.is_alive())
        self.assertEqual(tracker.stats.total, 2)

    def test_join_before_start(self):
        self.assertTrue(DeliveryTracker(DeliveryEventStream()).join())


if __name__ == '__main__':
    unittest.main()
