"""spanrelay error hierarchy and exceptions."""

from __future__ import annotations


class SpanRelayError(Exception):
    """Base exception for all spanrelay errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(SpanRelayError):
    """Raised when configuration is invalid or conflicting."""
    pass


class UnsupportedFormatError(SpanRelayError):
    """Raised when inject/extract is called with a format nobody registered."""

    def __init__(self, format: str, operation: str = None):
        details = {"format": format}
        if operation:
            details["operation"] = operation
        super().__init__(f"Unsupported propagation format '{format}'", details)
        self.format = format


class SpanBuilderError(SpanRelayError):
    """Raised when a span builder is used after it already started a span."""
    pass
