"""
Core exception hierarchy for KlaroLink.

Provides standardized exception types with categorization for retry logic.
The API layer maps these onto HTTP responses, so services raise them
instead of generic Exception.
"""

from typing import Any, Optional


# =============================================================================
# Base Exceptions
# =============================================================================


class KlaroLinkError(Exception):
    """Base exception for all KlaroLink errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class RetryableError(KlaroLinkError):
    """
    Transient errors that should be retried.

    Examples: Database timeouts, rate limits, temporary network issues.
    """

    pass


class PermanentError(KlaroLinkError):
    """
    Errors that won't be fixed by retrying.

    Examples: Invalid input, duplicate records, authentication failures.
    """

    pass


# =============================================================================
# Database Errors
# =============================================================================


class DatabaseError(RetryableError):
    """Raised when a database query fails."""

    def __init__(
        self,
        operation: str,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        self.operation = operation
        super().__init__(f"[{operation}] {message}", details)


class ConflictError(PermanentError):
    """Raised when a record violates a uniqueness constraint (email, slug)."""

    def __init__(self, resource: str, field: str, value: Any):
        self.resource = resource
        self.field = field
        super().__init__(
            f"{resource} with this {field} already exists",
            {"resource": resource, "field": field, "value": value},
        )


class NotFoundError(PermanentError):
    """Raised when a referenced record does not exist."""

    def __init__(self, resource: str, identifier: Any):
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            f"{resource} not found",
            {"resource": resource, "identifier": identifier},
        )


# =============================================================================
# Auth Errors
# =============================================================================


class AuthenticationError(PermanentError):
    """Raised when credentials or tokens are invalid."""

    pass


class AuthorizationError(PermanentError):
    """Raised when an authenticated caller acts on another tenant's data."""

    pass


# =============================================================================
# Validation Errors
# =============================================================================


class ValidationError(PermanentError):
    """Raised when input fails domain validation (email, slug, colour)."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        details = {"field": field} if field else None
        super().__init__(message, details)


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(PermanentError):
    """Raised when configuration is invalid or missing."""

    def __init__(self, message: str, config_key: Optional[str] = None):
        self.config_key = config_key
        details = {"config_key": config_key} if config_key else None
        super().__init__(message, details)


# =============================================================================
# AI Insights Errors
# =============================================================================


class AIInsightsError(KlaroLinkError):
    """Base exception for AI insight generation errors."""

    pass


class AIInsightsUnavailableError(AIInsightsError, RetryableError):
    """Raised when the model API is temporarily unavailable."""

    pass


class AIInsightsParseError(AIInsightsError, PermanentError):
    """Raised when the model response cannot be parsed."""

    pass
