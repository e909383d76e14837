"""Exception types shared by the services and the HTTP layer.

Each exception carries the HTTP status the API answers with when it escapes a
route handler.
"""

from __future__ import annotations


class CardinalError(Exception):
    """Base class for service errors"""

    status_code = 500


class ConfigurationError(CardinalError):
    """A required API key or setting is missing"""

    status_code = 500


class InvalidRequestError(CardinalError):
    status_code = 400


class NotFoundError(CardinalError):
    status_code = 404


class DuplicateArticleError(CardinalError):
    """Article (or other unique row) already exists or is too close to an existing one"""

    status_code = 409


class UpstreamError(CardinalError):
    """An AI, search, market or weather provider failed or answered garbage"""

    status_code = 502


class DatabaseError(CardinalError):
    """Custom exception for database operations"""

    status_code = 503


def require_key(value: str, name: str) -> str:
    if not value:
        raise ConfigurationError(f"{name} not configured")
    return value
