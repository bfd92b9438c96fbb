"""
Exception hierarchy for EVTC log processing.

All errors raised by the pipeline inherit from EVTCAnalyticsError. Only
fatal conditions are exceptions; degraded input is reported through flags
on the decoded records and the built Log.
"""


class EVTCAnalyticsError(Exception):
    """Base exception for all log processing errors."""


class DecodeError(EVTCAnalyticsError):
    """Raised when the byte stream cannot be decoded as an EVTC log."""

    def __init__(self, reason: str, offset: int = 0) -> None:
        self.reason = reason
        self.offset = offset
        super().__init__(f"{reason} (at byte {offset})")


class LogProcessingError(EVTCAnalyticsError):
    """Raised when decoded records have an unsupported structure."""


class DeterminerConfigurationError(EVTCAnalyticsError):
    """Raised when a result determiner is constructed with invalid arguments."""


class ConfigurationError(EVTCAnalyticsError):
    """Raised for invalid parser settings."""
