"""Custom exception handlers for FastAPI application.

This module registers global exception handlers that convert domain exceptions
into proper HTTP responses with appropriate status codes.

Hey future me - we also handle SQLAlchemy OperationalError here! When SQLite is
locked by a long cron sync, the admin gets a 503 with Retry-After instead of a
500 with "database is locked".
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from hallyuhub.domain.exceptions import (
    BusinessRuleViolation,
    ConfigurationError,
    EntityNotFoundException,
    ExternalServiceError,
    RateLimitExceededError,
    ValidationError,
)

logger = logging.getLogger(__name__)

DB_BUSY_RETRY_AFTER = 3  # seconds


# Hey future me, handlers MUST be registered during app setup, before any request arrives.
# Starlette picks the handler by walking the exception's MRO, so RateLimitExceededError gets
# its own 429 even though it subclasses ExternalServiceError (502).
def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping domain exceptions to HTTP status codes.

    - EntityNotFoundException → 404
    - BusinessRuleViolation → 400
    - ValidationError → 422
    - ConfigurationError → 503
    - RateLimitExceededError → 429
    - ExternalServiceError → 502
    - OperationalError (database locked) → 503

    Args:
        app: FastAPI application instance
    """

    @app.exception_handler(EntityNotFoundException)
    async def entity_not_found_exception_handler(
        request: Request, exc: EntityNotFoundException
    ) -> JSONResponse:
        """Handle entity not found exceptions with 404 Not Found."""
        logger.info(
            "Entity not found at %s: %s %s",
            request.url.path,
            exc.entity_type,
            exc.entity_id,
            extra={
                "path": request.url.path,
                "entity_type": exc.entity_type,
                "entity_id": str(exc.entity_id),
            },
        )
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": exc.message},
        )

    @app.exception_handler(BusinessRuleViolation)
    async def business_rule_violation_handler(
        request: Request, exc: BusinessRuleViolation
    ) -> JSONResponse:
        """Handle business rule violations with 400 Bad Request."""
        logger.warning(
            "Business rule violation at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"detail": exc.message},
        )

    @app.exception_handler(ValidationError)
    async def validation_error_handler(
        request: Request, exc: ValidationError
    ) -> JSONResponse:
        """Handle validation errors with 422 Unprocessable Entity."""
        logger.warning(
            "Validation error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": exc.message},
        )

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        """Handle configuration errors with 503 Service Unavailable."""
        logger.error(
            "Configuration error at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": exc.message},
        )

    @app.exception_handler(ExternalServiceError)
    async def external_service_error_handler(
        request: Request, exc: ExternalServiceError
    ) -> JSONResponse:
        """Handle external service errors with 502 Bad Gateway."""
        logger.error(
            "External service error at %s: %s",
            request.url.path,
            exc.message,
            extra={
                "path": request.url.path,
                "error": exc.message,
                "upstream_status": exc.status_code,
            },
        )
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message},
        )

    @app.exception_handler(RateLimitExceededError)
    async def rate_limit_exceeded_handler(
        request: Request, exc: RateLimitExceededError
    ) -> JSONResponse:
        """Handle rate limit errors with 429 Too Many Requests."""
        logger.warning(
            "Rate limit exceeded at %s: %s",
            request.url.path,
            exc.message,
            extra={"path": request.url.path, "error": exc.message},
        )
        headers = {"Retry-After": str(int(exc.retry_after))} if exc.retry_after else None
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": exc.message},
            headers=headers,
        )

    @app.exception_handler(OperationalError)
    async def database_operational_error_handler(
        request: Request, exc: OperationalError
    ) -> JSONResponse:
        """Handle SQLAlchemy OperationalError, with 503 + Retry-After when the DB is locked."""
        error_msg = str(exc).lower()
        if "locked" in error_msg or "busy" in error_msg:
            logger.warning(
                "Database busy at %s, asking client to retry",
                request.url.path,
                extra={"path": request.url.path},
            )
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"detail": "Database is busy. Please try again."},
                headers={"Retry-After": str(DB_BUSY_RETRY_AFTER)},
            )

        logger.error(
            "Database error at %s: %s",
            request.url.path,
            str(exc)[:500],
            extra={"path": request.url.path, "error": str(exc)[:500]},
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Database error occurred. Please try again."},
        )
