"""Tracehub SDK error hierarchy and exceptions."""

from __future__ import annotations


class TracehubError(Exception):
    """Base exception for all Tracehub SDK errors."""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ConfigError(TracehubError):
    """Raised when configuration is invalid or conflicting."""
    pass


class DsnError(ConfigError):
    """Raised when a DSN string cannot be parsed."""
    pass


class ValidationError(TracehubError):
    """Raised when a sample rate (fixed or returned by a sampler) is invalid."""
    pass


class EncodingError(TracehubError):
    """Raised when tracestate text cannot be converted to or from base64."""
    pass


class MalformedHeaderError(TracehubError):
    """Raised when a trace-parent header value does not match its grammar."""
    pass
