"""Exceptions raised by the monitor package."""


class MonitorError(Exception):
    """Base exception for all monitor errors."""


class DataUnavailableError(MonitorError):
    """Raised when the remote metrics document cannot be fetched or parsed."""


class InvalidQueryError(MonitorError):
    """Raised when a view is requested with an unusable filter or page."""
