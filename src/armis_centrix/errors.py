"""
Custom exception classes for the Armis Centrix client.

Every failure the client can produce is raised as a subclass of ArmisError so
callers can pattern-match on the kind of failure instead of parsing message
strings (retry on TransportError, force re-authentication on ApiError 401,
show the raw body of any ApiError to the user, and so on).

Exception Hierarchy:
    ArmisError (base)
    ├── ValidationError (bad caller input, detected before any network call)
    ├── TransportError (the HTTP exchange itself failed)
    ├── ApiError (server answered outside the 2xx range)
    ├── AuthError (token endpoint answered 2xx with success=false)
    ├── TimeParseError (token expiry timestamp could not be parsed)
    ├── DecodeError (response body or rule element had an unexpected shape)
    ├── ResponseError (2xx envelope with success=false from a resource call)
    └── ConfigurationError (invalid settings at startup)

Retry Semantics:
    - TransportError is always retryable
    - ApiError is retryable for 429 and 5xx responses only
    - Everything else fails fast
"""

from http import HTTPStatus
from typing import override


class ArmisError(Exception):
    """
    Base exception for all Armis client errors.

    Attributes:
        message: Human-readable error description
        retryable: Whether this error should be retried
        context: Additional context dictionary for structured logging
    """

    def __init__(
        self,
        message: str,
        retryable: bool = False,
        context: dict[str, object] | None = None,
    ) -> None:
        """
        Initialize Armis error.

        Args:
            message: Human-readable error description
            retryable: Whether this error should be retried
            context: Additional context for structured logging
        """
        super().__init__(message)
        self.message = message
        self.retryable = retryable
        self.context = context or {}

    @override
    def __str__(self) -> str:
        """Return string representation of error."""
        return self.message


class ValidationError(ArmisError):
    """
    Caller supplied an invalid or missing argument.

    Raised before any network call is attempted and never retried. When
    several independent checks fail (policy validation), every failure is
    listed in ``errors`` and joined into the message.

    Attributes:
        errors: Individual validation failures
    """

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or [message]
        super().__init__(message, retryable=False, context={"errors": self.errors})

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationError":
        """Build a single error out of several validation failures."""
        return cls("; ".join(errors), errors=errors)


class TransportError(ArmisError):
    """
    The HTTP exchange failed before a response was received.

    Covers DNS failures, refused connections and timeouts. The underlying
    requests exception is chained as ``__cause__``.

    Attributes:
        method: HTTP method of the failed request
        url: Target URL of the failed request
    """

    def __init__(
        self,
        message: str,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        context: dict[str, object] = {"method": method, "url": url}
        super().__init__(message, retryable=True, context=context)
        self.method = method
        self.url = url


class ApiError(ArmisError):
    """
    Armis answered with a status code outside the 2xx range.

    The body is kept exactly as received so it can be pretty-printed when it
    is JSON or shown verbatim otherwise.

    Attributes:
        status_code: HTTP status code from Armis
        body: Raw response body
    """

    def __init__(self, status_code: int, body: bytes = b"") -> None:
        """
        Initialize API error.

        Args:
            status_code: HTTP status code from Armis
            body: Raw response body, undecoded
        """
        self.status_code = status_code
        self.body = body
        retryable = status_code == 429 or status_code >= 500
        context: dict[str, object] = {
            "status_code": status_code,
            "response_body": body[:500].decode("utf-8", errors="replace") if body else None,
        }
        super().__init__(
            f"armis: API error {status_code}: {self.status_text}",
            retryable=retryable,
            context=context,
        )

    @property
    def status_text(self) -> str:
        """Return the standard reason phrase for the status code."""
        try:
            return HTTPStatus(self.status_code).phrase
        except ValueError:
            return ""


class AuthError(ArmisError):
    """
    The token endpoint answered 2xx but reported a logical failure.
    """

    def __init__(self, message: str = "authentication failed") -> None:
        super().__init__(message, retryable=False)


class TimeParseError(ArmisError):
    """
    The server-reported token expiry could not be parsed.

    The token that came with it is discarded rather than cached.

    Attributes:
        value: The unparseable timestamp string
    """

    def __init__(self, message: str, value: str | None = None) -> None:
        super().__init__(message, retryable=False, context={"value": value})
        self.value = value


class DecodeError(ArmisError):
    """
    A payload did not have the expected shape.

    Raised for malformed JSON response bodies, envelopes that do not match the
    expected data model, and rule-tree elements of an unsupported JSON type.
    """

    def __init__(self, message: str, context: dict[str, object] | None = None) -> None:
        super().__init__(message, retryable=False, context=context)


class ResponseError(ArmisError):
    """
    A resource endpoint answered 2xx with ``success`` set to false.

    Attributes:
        operation: Resource operation that failed (e.g. "create policy")
        body: Raw response body
    """

    def __init__(self, operation: str, body: bytes = b"") -> None:
        context: dict[str, object] = {
            "operation": operation,
            "response_body": body[:500].decode("utf-8", errors="replace") if body else None,
        }
        super().__init__(
            f"armis: {operation}: API reported success=false",
            retryable=False,
            context=context,
        )
        self.operation = operation
        self.body = body


class ConfigurationError(ArmisError):
    """
    Settings could not be loaded from the environment.

    Attributes:
        config_key: Environment variable at fault, when known
        reason: Short cause, also carried in the log context
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        reason: str | None = None,
    ) -> None:
        context = {
            "config_key": config_key,
            "reason": reason,
        }
        super().__init__(message, retryable=False, context=context)
        self.config_key = config_key
        self.reason = reason
