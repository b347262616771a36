"""
Access token lifecycle for the Armis API.

Armis exchanges a long-lived secret key for a short-lived access token at
``POST /api/{version}/access_token/``. SessionManager performs that exchange,
caches the token, and hands it out until it is about to expire.

Token validity:
    The server reports an absolute expiry (``expiration_utc``). The cached
    expiry is that value minus REFRESH_SKEW (5 minutes) so a token is never
    presented in the last minutes of its life. A token is valid while
    ``now < token_expiry``.

State machine:
    Unauthenticated -> Authenticating -> Authenticated
    Authenticated --(now >= token_expiry)--> Authenticating -> Authenticated

Thread safety:
    The cached state is an immutable Session value. Readers take the current
    reference without locking; refreshes run under a lock with a second
    freshness check, so concurrent callers that all observe a stale token
    trigger a single authentication call and share its result.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict

from armis_centrix.errors import AuthError, TimeParseError, ValidationError
from armis_centrix.executor import RequestExecutor, api_path
from armis_centrix.logging_config import get_logger, log_with_context

logger = get_logger(__name__)

REFRESH_SKEW = timedelta(minutes=5)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True)
class Session:
    """
    Snapshot of the authentication state.

    Replaced as a whole on every successful authentication, never mutated.

    Attributes:
        base_url: Armis API base URL the token was issued by
        credential_key: Secret key the token was obtained with
        access_token: Bearer token, empty until the first authentication
        token_expiry: Server expiry minus REFRESH_SKEW
        user_id: Armis user id reported with the token
    """

    base_url: str
    credential_key: str = ""
    access_token: str = ""
    token_expiry: datetime = _EPOCH
    user_id: int = 0

    def is_valid(self, now: datetime) -> bool:
        return bool(self.access_token) and now < self.token_expiry


class AuthData(BaseModel):
    """``data`` member of the access token response."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    expiration_utc: str = ""
    user_id: int | None = None


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 timestamp with up to nanosecond precision.

    Digits beyond microseconds are truncated by ``datetime.fromisoformat``.

    Raises:
        TimeParseError: If ``value`` is not a complete RFC 3339 date-time

    Example:
        >>> parse_rfc3339("2025-01-01T00:10:00.123456789Z")
        datetime.datetime(2025, 1, 1, 0, 10, 0, 123456, tzinfo=datetime.timezone.utc)
    """
    # fromisoformat is looser than RFC 3339 about the separator and seconds
    if len(value) < 20 or value[10] not in "Tt" or value[16] != ":":
        raise TimeParseError(f"armis: parse expiry: {value!r} is not an RFC 3339 timestamp", value=value)

    try:
        parsed = datetime.fromisoformat(value.upper())
    except ValueError as e:
        raise TimeParseError(f"armis: parse expiry: {value!r}: {e}", value=value) from e

    if parsed.tzinfo is None:
        raise TimeParseError(f"armis: parse expiry: {value!r} has no UTC offset", value=value)
    return parsed


class SessionManager:
    """
    Guarantees that outbound requests carry a non-expired access token.

    Attributes:
        token_path: Path of the access token endpoint
    """

    def __init__(
        self,
        executor: RequestExecutor,
        api_version: str = "v1",
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._executor = executor
        self._clock = clock
        self._lock = threading.Lock()
        self._session = Session(base_url=executor.base_url)
        self.token_path: str = api_path(api_version, "access_token")

    @property
    def session(self) -> Session:
        return self._session

    @property
    def user_id(self) -> int:
        return self._session.user_id

    @property
    def token_expiry(self) -> datetime | None:
        session = self._session
        return session.token_expiry if session.access_token else None

    def current_token(self) -> str | None:
        """Return the cached token if it is still valid, without any network call."""
        session = self._session
        if session.is_valid(self._clock()):
            return session.access_token
        return None

    def ensure_authenticated(self, credential_key: str, timeout: float | None = None) -> str:
        """
        Return a valid access token, authenticating only when necessary.

        Args:
            credential_key: Armis secret key
            timeout: Seconds before an authentication call is aborted

        Returns:
            Access token to send as ``Authorization``

        Raises:
            ValidationError: If credential_key is empty
            TransportError, ApiError, AuthError, TimeParseError, DecodeError:
                If an authentication call was needed and failed
        """
        if not credential_key:
            raise ValidationError("credential key required")

        session = self._session
        if session.credential_key == credential_key and session.is_valid(self._clock()):
            return session.access_token

        with self._lock:
            # Another thread may have refreshed while we waited
            session = self._session
            if session.credential_key == credential_key and session.is_valid(self._clock()):
                return session.access_token
            return self._authenticate_locked(credential_key, timeout)

    def authenticate(self, credential_key: str, timeout: float | None = None) -> str:
        """
        Exchange the secret key for a new access token unconditionally.

        The new token is cached only if the whole exchange succeeds,
        including parsing the expiry.

        Raises:
            ValidationError: If credential_key is empty
            TransportError: If the token endpoint could not be reached
            ApiError: If the token endpoint answered outside 2xx
            DecodeError: If the response was not a valid envelope
            AuthError: If Armis reported success=false or sent no token
            TimeParseError: If the expiry timestamp could not be parsed
        """
        if not credential_key:
            raise ValidationError("credential key required")
        with self._lock:
            return self._authenticate_locked(credential_key, timeout)

    def invalidate(self, token: str | None = None) -> None:
        """
        Drop the cached token so the next request re-authenticates.

        Args:
            token: Only drop the cache if it still holds this token. Lets a
                caller that saw a 401 avoid discarding a token another
                thread has already refreshed.
        """
        with self._lock:
            if token is None or self._session.access_token == token:
                self._session = Session(base_url=self._executor.base_url)

    def _authenticate_locked(self, credential_key: str, timeout: float | None) -> str:
        log_with_context(logger, "debug", "Requesting Armis access token", path=self.token_path)

        envelope = self._executor.execute(
            "POST",
            self.token_path,
            form={"secret_key": credential_key},
            data_model=AuthData,
            timeout=timeout,
        )

        if not envelope.success:
            log_with_context(logger, "warning", "Armis rejected the credential key")
            raise AuthError("authentication failed")

        data = envelope.data
        if data is None or not data.access_token:
            raise AuthError("authentication failed: response did not include an access token")

        expiry = parse_rfc3339(data.expiration_utc)

        self._session = Session(
            base_url=self._executor.base_url,
            credential_key=credential_key,
            access_token=data.access_token,
            token_expiry=expiry - REFRESH_SKEW,
            user_id=data.user_id or 0,
        )

        log_with_context(
            logger,
            "info",
            "Authenticated with Armis",
            user_id=self._session.user_id,
            token_expiry=self._session.token_expiry.isoformat(),
        )
        return data.access_token
