"""Domain exceptions mapped to HTTP error responses."""


class EatError(Exception):
    """Base class for errors that surface to API clients as ``{"error": ...}``."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RequestValidationFailed(EatError):
    """Missing or malformed request fields."""

    status_code = 400


class AuthError(EatError):
    """No valid session for the request."""

    status_code = 401


class NotFoundError(EatError):
    """Record does not exist or is not owned by the caller."""

    status_code = 404


class UndoRejectedError(EatError):
    """Cooking entry can no longer be undone."""

    status_code = 400


class UpstreamError(EatError):
    """An external service failed or returned unusable content."""

    status_code = 502


class LLMUnavailableError(UpstreamError):
    """The LLM provider could not be reached or is not configured."""


class LLMResponseError(UpstreamError):
    """The LLM replied with content that does not match the expected shape."""


class PersistenceError(EatError):
    """A database write failed."""

    status_code = 500
