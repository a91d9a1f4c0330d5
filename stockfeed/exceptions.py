"""
Stock Feed Exceptions

Structured error handling with specific failure modes. Every error carries
enough context to be visible and actionable in the logs.
"""

from typing import Optional, Any, Dict


class StockFeedError(Exception):
    """Base exception for all stock feed errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None,
                 recovery_hint: Optional[str] = None):
        """
        Initialize stock feed error with detailed context.

        Args:
            message: Human-readable error description
            details: Additional context for debugging
            recovery_hint: Suggested recovery action
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.recovery_hint = recovery_hint

    def __str__(self) -> str:
        """Return detailed error message for logging."""
        result = self.message

        if self.details:
            result += f"\nDetails: {self.details}"

        if self.recovery_hint:
            result += f"\nRecovery: {self.recovery_hint}"

        return result


class ConfigurationError(StockFeedError):
    """Raised when producer settings are invalid."""

    def __init__(self, message: str, field_name: str, value: Any = None,
                 allowed: Optional[str] = None):
        details = {
            "field": field_name,
            "value": value,
            "allowed": allowed
        }

        recovery_hint = (
            f"Fix the '{field_name}' setting. Allowed: {allowed}." if allowed else
            f"Fix the '{field_name}' setting."
        )

        super().__init__(message, details, recovery_hint)
        self.field_name = field_name
        self.value = value


class ProducerConnectionError(StockFeedError):
    """Raised when the Kafka client cannot be created."""

    def __init__(self, message: str, bootstrap_servers: str,
                 underlying_error: Optional[Exception] = None):
        details = {
            "bootstrap_servers": bootstrap_servers,
            "underlying_error": str(underlying_error) if underlying_error else None
        }

        recovery_hint = (
            f"Check the Kafka broker is running and reachable at {bootstrap_servers}. "
            f"Verify firewall settings and advertised listeners."
        )

        super().__init__(message, details, recovery_hint)
        self.bootstrap_servers = bootstrap_servers
        self.underlying_error = underlying_error


class EncodingError(StockFeedError):
    """Raised when a stock update cannot be represented in the output format."""

    def __init__(self, message: str, ticker: str, field_name: str,
                 value: Any, output_format: str):
        details = {
            "ticker": ticker,
            "field_name": field_name,
            "invalid_value": value,
            "format": output_format
        }

        recovery_hint = (
            f"{ticker}.{field_name}={value} does not fit the {output_format} encoding. "
            f"The message is dropped."
        )

        super().__init__(message, details, recovery_hint)
        self.ticker = ticker
        self.field_name = field_name
        self.value = value
        self.output_format = output_format


class EnqueueError(StockFeedError):
    """Raised when the Kafka client refuses a message into its send buffer."""

    def __init__(self, message: str, topic: str,
                 underlying_error: Optional[Exception] = None):
        details = {
            "topic": topic,
            "underlying_error": str(underlying_error) if underlying_error else None
        }

        recovery_hint = (
            "Local send buffer rejected the message. "
            "Check broker health or lower the production rate."
        )

        super().__init__(message, details, recovery_hint)
        self.topic = topic
        self.underlying_error = underlying_error
