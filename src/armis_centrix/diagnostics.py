"""
Human-readable rendering of client errors.

Turns any exception raised by the client into a short summary plus a detail
block suitable for a terminal or a ticket. ApiError details include the
status line and the response body, pretty-printed when it is JSON.

Usage:
    try:
        PolicyService(client).get("42")
    except ArmisError as e:
        diagnostic = render_error("Unable to read policy", e)
        print(diagnostic, file=sys.stderr)
"""

import json
from dataclasses import dataclass
from typing import override

from armis_centrix.errors import ApiError

NO_DETAILS = "(no additional error details returned)"
EMPTY_BODY = "(empty response body)"


@dataclass(frozen=True)
class Diagnostic:
    """
    A rendered error.

    Attributes:
        summary: Short title supplied by the caller
        detail: Multi-line explanation
    """

    summary: str
    detail: str

    @override
    def __str__(self) -> str:
        return f"{self.summary}\n{self.detail}"


def render_error(title: str, err: BaseException | None) -> Diagnostic:
    """
    Render an error for display.

    Args:
        title: Summary line, e.g. "Unable to create policy"
        err: Error to describe; None when the failure carried no error

    Returns:
        Diagnostic with the title as summary

    Example:
        >>> print(render_error("Unable to read policy", ApiError(404, b'{"message":"missing"}')).detail)
        API error 404 Not Found
        Response body:
        {
          "message": "missing"
        }
    """
    if err is None:
        return Diagnostic(title, NO_DETAILS)

    if isinstance(err, ApiError):
        body = format_body(err.body)
        return Diagnostic(title, f"API error {err.status_code} {err.status_text}\nResponse body:\n{body}")

    return Diagnostic(title, f"API error: {err}")


def format_body(raw: bytes) -> str:
    """Return the body indented when it is JSON, verbatim (stripped) otherwise."""
    text = raw.decode("utf-8", errors="replace").strip()
    if not text:
        return EMPTY_BODY
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return text
    return json.dumps(parsed, indent=2, ensure_ascii=False)
