"""
Armis Centrix API client.

ArmisClient ties the pieces together: it owns one RequestExecutor (the HTTP
pipeline) and one SessionManager (the token cache), and exposes ``request``,
which resource modules use for every call.

Per request:
    1. ensure a valid access token (authenticating only when needed)
    2. execute the HTTP exchange
    3. on ApiError 401, drop the token, re-authenticate and retry once
    4. retry TransportError and 429/5xx ApiError with exponential backoff

The client is safe to share across threads.

Usage:
    from armis_centrix.client import ArmisClient
    from armis_centrix.policies import PolicyService

    with ArmisClient(api_key="...") as client:
        policies = PolicyService(client).list_all()
"""

import time
from collections.abc import Callable, Mapping
from datetime import datetime
from types import TracebackType
from typing import Any, ClassVar, TypeVar

import requests
from pydantic import BaseModel

from armis_centrix.config import Settings
from armis_centrix.errors import ApiError, ValidationError
from armis_centrix.executor import DEFAULT_TIMEOUT_SECONDS, Envelope, RequestExecutor, api_path
from armis_centrix.logging_config import RequestContext, get_logger, log_with_context
from armis_centrix.retry import RetryPolicy, call_with_retry
from armis_centrix.session import SessionManager, utcnow

logger = get_logger(__name__)

T = TypeVar("T")


class ArmisClient:
    """
    Concurrency-safe client for the Armis Centrix REST API.

    No network call is made at construction; the first request (or an
    explicit ``authenticate()``) obtains the access token.

    Attributes:
        api_version: API version path segment
        timeout: Per-request timeout in seconds
        retry_policy: Retry bound and backoff for transient failures
        executor: HTTP pipeline
        sessions: Access token cache
    """

    DEFAULT_API_URL: ClassVar[str] = "https://api.armis.com"
    DEFAULT_API_VERSION: ClassVar[str] = "v1"

    def __init__(
        self,
        api_key: str,
        api_url: str = DEFAULT_API_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        retry_policy: RetryPolicy | None = None,
        http_session: requests.Session | None = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: Armis secret key exchanged for access tokens
            api_url: Armis API base URL
            api_version: API version path segment
            timeout: Per-request timeout in seconds
            retry_policy: Retry configuration (default: 3 attempts)
            http_session: Custom requests session (proxies, adapters, ...)
            clock: Source of the current time for token expiry checks
            sleep: Backoff wait function

        Raises:
            ValidationError: If api_key is empty
        """
        if not api_key:
            raise ValidationError("credential key required")

        self._api_key = api_key
        self._sleep = sleep
        self.api_version: str = api_version
        self.timeout: float = timeout
        self.retry_policy: RetryPolicy = retry_policy or RetryPolicy()
        self.executor: RequestExecutor = RequestExecutor(api_url, timeout=timeout, session=http_session)
        self.sessions: SessionManager = SessionManager(self.executor, api_version=api_version, clock=clock)

        log_with_context(
            logger,
            "info",
            "Initialized Armis client",
            base_url=self.executor.base_url,
            api_version=api_version,
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "ArmisClient":
        """Build a client from loaded configuration."""
        return cls(
            api_key=settings.armis_api_key,
            api_url=settings.armis_api_url,
            api_version=settings.armis_api_version,
            timeout=settings.armis_timeout_seconds,
            retry_policy=RetryPolicy(max_attempts=settings.armis_max_retries),
            **kwargs,
        )

    @property
    def base_url(self) -> str:
        return self.executor.base_url

    @property
    def user_id(self) -> int:
        """Armis user id from the last successful authentication (0 before)."""
        return self.sessions.user_id

    def authenticate(self) -> str:
        """
        Make sure a valid token is cached and return it.

        Raises:
            ArmisError: If authentication fails after retries
        """
        with RequestContext():
            return call_with_retry(
                lambda: self.sessions.ensure_authenticated(self._api_key, self.timeout),
                self.retry_policy,
                self._sleep,
            )

    def path(self, resource: str, resource_id: str | int | None = None) -> str:
        return api_path(self.api_version, resource, resource_id)

    def request(
        self,
        method: str,
        resource: str,
        data_model: type[T] | Any = Any,
        *,
        body: BaseModel | Mapping[str, Any] | None = None,
        resource_id: str | int | None = None,
        params: Mapping[str, str | int | bool] | None = None,
        timeout: float | None = None,
    ) -> Envelope[T]:
        """
        Call an Armis endpoint with authentication and retries.

        Args:
            method: HTTP method
            resource: Resource collection, e.g. ``policies``
            data_model: Type the envelope's ``data`` is decoded into
            body: JSON body
            resource_id: Optional id appended to the path (URL-escaped)
            params: Query string parameters
            timeout: Per-call timeout override in seconds

        Returns:
            Decoded envelope; callers check ``success``

        Raises:
            ArmisError: Classified failure, see armis_centrix.errors
        """
        path = self.path(resource, resource_id)
        call_timeout = timeout if timeout is not None else self.timeout

        def attempt() -> Envelope[T]:
            return self._request_once(method, path, data_model, body, params, call_timeout)

        with RequestContext():
            return call_with_retry(attempt, self.retry_policy, self._sleep)

    def _request_once(
        self,
        method: str,
        path: str,
        data_model: type[T] | Any,
        body: BaseModel | Mapping[str, Any] | None,
        params: Mapping[str, str | int | bool] | None,
        timeout: float,
    ) -> Envelope[T]:
        token = self.sessions.ensure_authenticated(self._api_key, timeout)
        try:
            return self.executor.execute(
                method, path, body, token, data_model=data_model, params=params, timeout=timeout
            )
        except ApiError as e:
            if e.status_code != 401:
                raise

            log_with_context(
                logger,
                "warning",
                "Received 401, re-authenticating",
                method=method,
                path=path,
            )
            self.sessions.invalidate(token)
            token = self.sessions.ensure_authenticated(self._api_key, timeout)
            # A second 401 propagates
            return self.executor.execute(
                method, path, body, token, data_model=data_model, params=params, timeout=timeout
            )

    def close(self) -> None:
        self.executor.close()

    def __enter__(self) -> "ArmisClient":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()
