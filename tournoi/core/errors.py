"""
Error type shared by the upstream clients, the services and the HTTP layer.

Every failure the application knows how to describe is an ``ApiError``
tagged with an ``ErrorKind``. Retry and propagation decisions look at the
tag (and the ``retryable`` flag it implies), never at the exception's
class or shape.
"""
from enum import Enum
from typing import Optional

import httpx


class ErrorKind(str, Enum):
    """Known failure kinds, each with an HTTP status and retry policy."""

    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    RATE_LIMITED = "RATE_LIMITED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    UPSTREAM = "UPSTREAM_ERROR"
    INTERNAL = "INTERNAL_ERROR"


# kind -> (http status, retryable)
_KIND_POLICY = {
    ErrorKind.BAD_REQUEST: (400, False),
    ErrorKind.UNAUTHORIZED: (401, False),
    ErrorKind.FORBIDDEN: (403, False),
    ErrorKind.NOT_FOUND: (404, False),
    ErrorKind.RATE_LIMITED: (429, True),
    ErrorKind.SERVICE_UNAVAILABLE: (503, True),
    ErrorKind.TIMEOUT: (504, True),
    ErrorKind.UPSTREAM: (502, True),
    ErrorKind.INTERNAL: (500, False),
}


class ApiError(Exception):
    """
    Client-facing error with a stable machine-readable code.

    Attributes:
        kind: Failure kind
        message: Human-readable message
        status_code: HTTP status returned to clients
        code: Machine-readable code (defaults to the kind's value)
        retryable: Whether the retry wrapper may try again
        retry_after: Seconds the caller should wait (rate limits only)
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        retryable: Optional[bool] = None,
        retry_after: Optional[int] = None,
    ):
        super().__init__(message)
        default_status, default_retryable = _KIND_POLICY[kind]
        self.kind = kind
        self.message = message
        self.status_code = status_code if status_code is not None else default_status
        self.code = code or kind.value
        self.retryable = default_retryable if retryable is None else retryable
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return f"ApiError(kind={self.kind.name}, status={self.status_code}, message={self.message!r})"

    def to_dict(self) -> dict:
        body = {"code": self.code, "message": self.message}
        if self.retry_after is not None:
            body["retryAfter"] = self.retry_after
        return body

    @classmethod
    def bad_request(cls, message: str = "Bad request") -> "ApiError":
        return cls(ErrorKind.BAD_REQUEST, message)

    @classmethod
    def unauthorized(cls, message: str = "Unauthorized") -> "ApiError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def forbidden(cls, message: str = "Forbidden") -> "ApiError":
        return cls(ErrorKind.FORBIDDEN, message)

    @classmethod
    def not_found(cls, message: str = "Resource not found") -> "ApiError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def rate_limited(cls, message: str = "Too many requests", retry_after: Optional[int] = None) -> "ApiError":
        return cls(ErrorKind.RATE_LIMITED, message, retry_after=retry_after)

    @classmethod
    def service_unavailable(cls, message: str = "Service unavailable") -> "ApiError":
        return cls(ErrorKind.SERVICE_UNAVAILABLE, message)

    @classmethod
    def timeout(cls, message: str = "Request timeout") -> "ApiError":
        return cls(ErrorKind.TIMEOUT, message)

    @classmethod
    def upstream(cls, message: str, status_code: int = 502, code: str = "UPSTREAM_ERROR") -> "ApiError":
        return cls(ErrorKind.UPSTREAM, message, status_code=status_code, code=code)

    @classmethod
    def internal(cls, message: str = "Internal error", code: str = "INTERNAL_ERROR") -> "ApiError":
        return cls(ErrorKind.INTERNAL, message, code=code)


def error_from_response(response: httpx.Response, service: str, code: str) -> ApiError:
    """
    Classify a non-2xx upstream response.

    Args:
        response: The failed response
        service: Upstream name used in messages ("HelloAsso", "FFTT")
        code: Machine code for unexpected statuses (e.g. "HELLOASSO_API_ERROR")
    """
    status = response.status_code
    detail = response.text[:500]

    if status == 401:
        return ApiError.unauthorized(f"{service} authentication failed: {detail}")
    if status == 403:
        return ApiError.forbidden(f"{service} access forbidden: {detail}")
    if status == 404:
        return ApiError.not_found(f"{service} resource not found: {response.request.url.path}")
    if status == 429:
        return ApiError.rate_limited(f"{service} rate limit exceeded")
    if status == 503:
        return ApiError.service_unavailable(f"{service} unavailable: {detail}")
    if status == 504:
        return ApiError.timeout(f"{service} gateway timeout")
    return ApiError.upstream(f"{service} API error ({status}): {detail}", status_code=502, code=code)


def error_from_transport(exc: httpx.RequestError, service: str) -> ApiError:
    """Classify a network-level failure (no response received)."""
    if isinstance(exc, httpx.TimeoutException):
        return ApiError.timeout(f"{service} request timed out")
    return ApiError.service_unavailable(f"{service} unreachable: {exc}")


def is_retryable(error: BaseException) -> bool:
    """Default retry predicate: only errors explicitly flagged retryable."""
    return isinstance(error, ApiError) and error.retryable
