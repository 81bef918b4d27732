"""Application-level exception types.

``AppError`` subclasses carry the HTTP status and client-facing message used
by the exception handlers. The store raises its own plain sentinels, which
services translate, so the persistence layer never knows about HTTP.
"""

from typing import Union


class AppError(Exception):
    """Base error rendered as ``{"error": message}``."""

    status_code = 500
    default_message = 'the server encountered a problem and could not process your request'

    def __init__(self, message: Union[str, dict, None] = None):
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)


class BadRequestError(AppError):
    status_code = 400
    default_message = 'bad request'


class DecodeError(BadRequestError):
    """Raised when a request body cannot be decoded into the expected shape."""


class FailedValidationError(AppError):
    """Raised with the full field -> message map collected by a Validator."""

    status_code = 422

    def __init__(self, errors: dict[str, str]):
        self.errors = dict(errors)
        super().__init__(self.errors)


class NotFoundError(AppError):
    status_code = 404
    default_message = 'the requested resource could not be found'


class RateLimitExceededError(AppError):
    status_code = 429
    default_message = 'rate limit exceeded'


class RecordNotFoundError(Exception):
    """Store sentinel: no row matched, or the id can never exist."""


class DuplicateISBNError(Exception):
    """Store sentinel: the unique isbn constraint rejected a write."""
