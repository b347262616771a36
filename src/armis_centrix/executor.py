"""
HTTP request execution for the Armis REST API.

RequestExecutor performs exactly one HTTP exchange and turns it into either a
typed ``Envelope[T]`` or a classified error. It knows nothing about which
resource is being manipulated and never touches session state; the caller
passes the access token in.

Classification:
    - transport failure (DNS, refused connection, timeout) -> TransportError
    - status outside [200, 300)                             -> ApiError (raw body kept)
    - 2xx with a body that is not a valid envelope          -> DecodeError
    - 2xx with success=false                                -> returned as-is

Usage:
    executor = RequestExecutor("https://api.armis.com")
    envelope = executor.execute(
        "GET",
        api_path("v1", "policies", "12"),
        token=token,
        data_model=PolicyDetails,
    )
    if envelope.success:
        print(envelope.data.name)
"""

import json
from collections.abc import Mapping
from typing import Any, Generic, TypeVar, cast
from urllib.parse import quote_plus

import requests
from pydantic import BaseModel, ConfigDict, PrivateAttr
from pydantic import ValidationError as PydanticValidationError

from armis_centrix.errors import ApiError, DecodeError, ResponseError, TransportError
from armis_centrix.logging_config import get_logger, log_with_context
from armis_centrix.rules import Group, Leaf, encode_node

logger = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0
USER_AGENT = "armis-centrix-python/0.1.0"


class Envelope(BaseModel, Generic[T]):
    """
    Response wrapper shared by every Armis endpoint.

    ``success=False`` on a 2xx response is a logical failure that the caller
    decides how to handle.

    Attributes:
        data: Decoded payload (absent on some delete responses)
        success: Whether Armis reports the call as successful
        count: Items in this page, when paginated
        next: Cursor or offset of the next page, when paginated
        prev: Cursor or offset of the previous page, when paginated
        total: Total items across pages, when paginated
    """

    model_config = ConfigDict(extra="ignore")

    data: T | None = None
    success: bool = False
    count: int | None = None
    next: int | str | None = None
    prev: int | str | None = None
    total: int | None = None

    _raw_body: bytes = PrivateAttr(default=b"")

    @property
    def raw_body(self) -> bytes:
        """Return the response body exactly as received."""
        return self._raw_body


def api_path(version: str, resource: str, resource_id: str | int | None = None) -> str:
    """
    Build ``/api/{version}/{resource}/[{id}/]`` with the id URL-escaped.

    Example:
        >>> api_path("v1", "policies", "a b")
        '/api/v1/policies/a+b/'
    """
    path = f"/api/{version}/{resource.strip('/')}/"
    if resource_id is not None:
        path += f"{quote_plus(str(resource_id))}/"
    return path


class RequestExecutor:
    """
    Sends single requests to Armis and classifies the responses.

    Safe to share across threads: the only state is the pooled
    ``requests.Session`` and immutable configuration.

    Attributes:
        base_url: Armis API base URL without trailing slash
        timeout: Default per-request timeout in seconds
        session: Persistent HTTP session for connection pooling
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url: str = base_url.rstrip("/")
        self.timeout: float = timeout
        self.session: requests.Session = session or requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT

    def execute(
        self,
        method: str,
        path: str,
        body: BaseModel | Mapping[str, Any] | None = None,
        token: str | None = None,
        *,
        data_model: type[T] | Any = Any,
        params: Mapping[str, str | int | bool] | None = None,
        form: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> Envelope[T]:
        """
        Perform one HTTP exchange and decode the envelope.

        Args:
            method: HTTP method (GET, POST, PATCH, DELETE, ...)
            path: Path below the base URL, e.g. ``/api/v1/policies/``
            body: JSON body as a pydantic model or a mapping
            token: Access token sent verbatim as ``Authorization``; omitted
                when None
            data_model: Type the envelope's ``data`` is decoded into
            params: Query string parameters
            form: Form fields; sent url-encoded instead of a JSON body
            timeout: Seconds before the in-flight call is aborted (defaults
                to the executor timeout)

        Returns:
            Decoded envelope; ``success`` is not checked

        Raises:
            TransportError: If no response was received
            ApiError: If the status code is outside [200, 300); redirects
                are returned as-is, not followed
            DecodeError: If a 2xx body is not a valid envelope for data_model
        """
        url = f"{self.base_url}{path}"
        headers = {"Accept": "application/json"}
        payload: bytes | dict[str, str] | None = None

        if form is not None:
            headers["Content-Type"] = "application/x-www-form-urlencoded"
            payload = dict(form)
        else:
            headers["Content-Type"] = "application/json"
            if body is not None:
                payload = _encode_body(body)

        if token:
            headers["Authorization"] = token

        log_with_context(
            logger,
            "debug",
            "Sending Armis request",
            method=method,
            path=path,
            authenticated=bool(token),
        )

        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                data=payload,
                timeout=timeout if timeout is not None else self.timeout,
                allow_redirects=False,
            )
            raw = response.content
        except requests.RequestException as e:
            log_with_context(
                logger,
                "error",
                "Armis request failed before a response was received",
                method=method,
                path=path,
                error=str(e),
            )
            raise TransportError(
                f"armis: {method} {path}: {e}",
                method=method,
                url=url,
            ) from e

        status = response.status_code
        if not 200 <= status < 300:
            log_with_context(
                logger,
                "warning",
                "Armis returned an error status",
                method=method,
                path=path,
                status_code=status,
                response_body=raw[:500].decode("utf-8", errors="replace"),
            )
            raise ApiError(status, raw)

        envelope = decode_envelope(raw, data_model)
        log_with_context(
            logger,
            "debug",
            "Armis request completed",
            method=method,
            path=path,
            status_code=status,
            success=envelope.success,
        )
        return envelope

    def close(self) -> None:
        self.session.close()


def decode_envelope(raw: bytes, data_model: type[T] | Any = Any) -> Envelope[T]:
    """
    Decode a response body into ``Envelope[data_model]``.

    Raises:
        DecodeError: If the body is not JSON or does not match the model
    """
    model = cast(type[Envelope[T]], Envelope[data_model])  # pyright: ignore[reportInvalidTypeArguments]
    try:
        envelope = model.model_validate_json(raw)
    except PydanticValidationError as e:
        raise DecodeError(
            f"armis: decode response: {e.error_count()} validation error(s): {e.errors()[0]['msg']}",
            context={"response_body": raw[:500].decode("utf-8", errors="replace")},
        ) from e
    envelope._raw_body = raw
    return envelope


def _encode_body(body: BaseModel | Mapping[str, Any]) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True, exclude_none=True).encode("utf-8")
    return json.dumps(body, default=_default_json).encode("utf-8")


def _default_json(value: object) -> object:
    # Rule trees and nested models embedded in plain mappings
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, (Leaf, Group)):
        return encode_node(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def unwrap(envelope: Envelope[Any], operation: str) -> Any:
    """
    Return the envelope's data, treating success=false as a failure.

    Args:
        envelope: Decoded response
        operation: Description used in the error, e.g. "get policy '12'"

    Raises:
        ResponseError: If Armis reported success=false or sent no data
    """
    if not envelope.success or envelope.data is None:
        log_with_context(
            logger,
            "warning",
            "Armis reported a failed operation",
            operation=operation,
            success=envelope.success,
        )
        raise ResponseError(operation, envelope.raw_body)
    return envelope.data
