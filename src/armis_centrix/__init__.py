"""
Armis Centrix: Python client for the Armis Centrix REST API.

Handles the access token lifecycle, request execution with typed response
envelopes, and the recursive and/or rule trees that policies and boundaries
are built from.

Key Components:
    - SessionManager: Caches the access token and refreshes it 5 minutes
      before the server-reported expiry, once, even under concurrent use
    - RequestExecutor: Sends one HTTP request and returns Envelope[T] or a
      classified error (ApiError keeps the raw response body)
    - Leaf / Group: Rule tree with faithful JSON encoding and lenient decoding
    - ArmisClient: Ties the above together with 401 re-authentication and
      retries for transient failures
    - PolicyService, BoundaryService, SearchService: Resource operations

Architecture:
    caller -> ArmisClient -> SessionManager (token) -> RequestExecutor -> Armis API

Environment Variables:
    ARMIS_API_KEY: Armis secret key (required)
    ARMIS_API_URL: API base URL (default: https://api.armis.com)
    ARMIS_API_VERSION: API version (default: v1)
    ARMIS_TIMEOUT_SECONDS: Per-request timeout (default: 30)
    ARMIS_MAX_RETRIES: Attempts for transient failures (default: 3)
    LOG_LEVEL: Logging level (default: INFO)

Usage:
    from armis_centrix import ArmisClient, PolicyService

    with ArmisClient(api_key="...") as client:
        for policy in PolicyService(client).list_all():
            print(policy.id, policy.name)

    # Command line
    armis-centrix policies list

License: Apache-2.0
"""

from armis_centrix.boundaries import Boundary, BoundaryService
from armis_centrix.client import ArmisClient
from armis_centrix.diagnostics import Diagnostic, render_error
from armis_centrix.errors import (
    ApiError,
    ArmisError,
    AuthError,
    ConfigurationError,
    DecodeError,
    ResponseError,
    TimeParseError,
    TransportError,
    ValidationError,
)
from armis_centrix.executor import Envelope, RequestExecutor
from armis_centrix.policies import PolicyDetails, PolicyService, PolicySettings, PolicySummary
from armis_centrix.retry import RetryPolicy
from armis_centrix.rules import Group, Leaf, Operator, build_rule, decode_rule
from armis_centrix.search import SearchData, SearchResult, SearchService
from armis_centrix.session import Session, SessionManager

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "ApiError",
    "ArmisClient",
    "ArmisError",
    "AuthError",
    "Boundary",
    "BoundaryService",
    "ConfigurationError",
    "DecodeError",
    "Diagnostic",
    "Envelope",
    "Group",
    "Leaf",
    "Operator",
    "PolicyDetails",
    "PolicyService",
    "PolicySettings",
    "PolicySummary",
    "RequestExecutor",
    "ResponseError",
    "RetryPolicy",
    "SearchData",
    "SearchResult",
    "SearchService",
    "Session",
    "SessionManager",
    "TimeParseError",
    "TransportError",
    "ValidationError",
    "build_rule",
    "decode_rule",
    "render_error",
]
