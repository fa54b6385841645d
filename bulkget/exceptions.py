"""
Defines custom exceptions for the application to allow for more specific error handling.
"""


class BulkgetError(Exception):
    """Base exception for all application-specific errors."""


class ConfigurationError(BulkgetError):
    """Raised for issues related to configuration loading or validation."""


class DestinationError(BulkgetError):
    """Raised when the destination directory cannot be created or entered."""


class SourceReadError(BulkgetError):
    """Raised when reading lines from an already opened URL source fails."""


class InvalidURLError(BulkgetError):
    """Raised when a URL cannot be turned into an HTTP request."""
