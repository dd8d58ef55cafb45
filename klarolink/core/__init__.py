"""Core primitives shared across KlaroLink: exceptions and logging setup."""

from klarolink.core.exceptions import (
    AIInsightsError,
    AIInsightsParseError,
    AIInsightsUnavailableError,
    AuthenticationError,
    AuthorizationError,
    ConfigurationError,
    ConflictError,
    DatabaseError,
    KlaroLinkError,
    NotFoundError,
    PermanentError,
    RetryableError,
    ValidationError,
)

__all__ = [
    "AIInsightsError",
    "AIInsightsParseError",
    "AIInsightsUnavailableError",
    "AuthenticationError",
    "AuthorizationError",
    "ConfigurationError",
    "ConflictError",
    "DatabaseError",
    "KlaroLinkError",
    "NotFoundError",
    "PermanentError",
    "RetryableError",
    "ValidationError",
]
