"""
Synthetic stock feed producer.

Publishes mean-reverting simulated stock prices to Kafka in a binary
(protobuf, integer cents) or text (JSON) encoding.
"""

__version__ = "1.0.0"
