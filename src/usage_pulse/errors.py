"""Error taxonomy for usage fetches.

Every failure of a refresh is classified into one of these exceptions.
Retryable errors feed the backoff scheduler; the rest end the retry chain.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    UNAUTHORIZED = "unauthorized"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    NETWORK_ERROR = "network_error"
    DECODING_ERROR = "decoding_error"
    INVALID_RESPONSE = "invalid_response"


class UsageError(Exception):
    """Base class for classified fetch failures."""

    kind: ErrorKind
    retryable = False


class UnauthorizedError(UsageError):
    kind = ErrorKind.UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized: open Claude Code to refresh the token") -> None:
        super().__init__(message)


class RateLimitedError(UsageError):
    kind = ErrorKind.RATE_LIMITED
    retryable = True

    def __init__(self) -> None:
        super().__init__("Rate limited (HTTP 429)")


class ServerError(UsageError):
    kind = ErrorKind.SERVER_ERROR
    retryable = True

    def __init__(self, code: int) -> None:
        super().__init__(f"Server error (HTTP {code})")
        self.code = code


class NetworkError(UsageError):
    kind = ErrorKind.NETWORK_ERROR
    retryable = True

    def __init__(self, cause: BaseException | None = None) -> None:
        reason = getattr(cause, "reason", None) or cause
        super().__init__(f"Connection failed: {reason}" if reason else "Connection failed")
        self.cause = cause


class DecodingError(UsageError):
    kind = ErrorKind.DECODING_ERROR

    def __init__(self, cause: BaseException | str | None = None) -> None:
        super().__init__(f"Could not decode usage response: {cause}")
        self.cause = cause


class InvalidResponseError(UsageError):
    kind = ErrorKind.INVALID_RESPONSE

    def __init__(self, status: int | None = None) -> None:
        msg = f"Unexpected response (HTTP {status})" if status is not None else "Unexpected response"
        super().__init__(msg)
        self.status = status
