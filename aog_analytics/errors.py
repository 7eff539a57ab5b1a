"""Exception types raised by the AOG downtime analytics package."""


class AOGAnalyticsError(Exception):
    """Base exception for recoverable analytics and persistence errors."""


class ConfigurationError(AOGAnalyticsError):
    """Raised when runtime settings are missing or invalid."""


class DataValidationError(AOGAnalyticsError):
    """Raised when an events table lacks the columns needed to build events."""


class PersistenceError(AOGAnalyticsError):
    """Raised when the event store rejects a read or write."""
