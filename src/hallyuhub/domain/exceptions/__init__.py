"""Domain exceptions."""

from typing import Any


class DomainException(Exception):
    """Base exception for all domain exceptions."""

    # Hey future me, message is stored as an attribute so handlers can read it without
    # parsing str(exception). Don't raise this directly - use a specific subclass so
    # callers (and the HTTP exception handlers) can catch precisely.
    def __init__(self, message: str, *args: Any) -> None:
        super().__init__(message, *args)
        self.message = message


class EntityNotFoundException(DomainException):
    """Raised when an entity is not found."""

    # entity_type/entity_id are kept separately so the 404 handler can log them structured.
    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(f"{entity_type} with id {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class BusinessRuleViolation(DomainException):
    """A business rule was violated.

    HTTP Status: 400

    Example:
        raise BusinessRuleViolation("keep_id and delete_id must differ")
    """

    pass


class ValidationError(DomainException):
    """Input validation failed.

    HTTP Status: 422
    """

    pass


class ConfigurationError(DomainException):
    """Application misconfiguration.

    Raised when required configuration is missing or invalid.

    HTTP Status: 503 (Service Unavailable)

    Example:
        raise ConfigurationError("TMDB API key is not configured")
    """

    pass


class ExternalServiceError(DomainException):
    """External service (TMDB, MusicBrainz) returned an error.

    HTTP Status: 502 (Bad Gateway)
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RateLimitExceededError(ExternalServiceError):
    """External service rate limit was exceeded and retries ran out.

    HTTP Status: 429
    """

    def __init__(self, message: str, retry_after: float | None = None) -> None:
        super().__init__(message, status_code=429)
        self.retry_after = retry_after


class NotFoundError(ExternalServiceError):
    """External resource does not exist (HTTP 404 from the provider).

    Never retried. Sync services map it to the NOT_FOUND sync status.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


__all__ = [
    "DomainException",
    "EntityNotFoundException",
    "BusinessRuleViolation",
    "ValidationError",
    "ConfigurationError",
    "ExternalServiceError",
    "RateLimitExceededError",
    "NotFoundError",
]
