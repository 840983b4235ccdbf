"""Error taxonomy for voice commands.

Failures are tagged once, where they are caught, with an :class:`ErrorKind`.
Everything downstream works on the tag; :func:`user_message` turns a tag
into the literal sentence the user sees.
"""

from __future__ import annotations

import asyncio
from enum import Enum


class ErrorKind(Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONNECTIVITY = "connectivity"
    CONFIGURATION = "configuration"
    RATE_LIMITED = "rate_limited"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


class OperationCancelled(Exception):
    """Raised inside a command when the caller's cancel signal has fired."""


CANCELLED_MESSAGE = "Cancelled"

_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Sorry, I didn't understand that command. Please try again.",
    ErrorKind.NOT_FOUND: "I couldn't find that. Please check the name and try again.",
    ErrorKind.CONNECTIVITY: "Network error. Please check your connection and try again.",
    ErrorKind.CONFIGURATION: (
        "Voice commands require an AI service to be configured. "
        "Please add an API key in settings."
    ),
    ErrorKind.RATE_LIMITED: "Too many requests. Please wait a moment and try again.",
    ErrorKind.CANCELLED: CANCELLED_MESSAGE,
    ErrorKind.UNKNOWN: "Sorry, I couldn't process that command. Please try again.",
}


def user_message(kind: ErrorKind, subject: str | None = None) -> str:
    """Return the fixed user-facing sentence for *kind*.

    *subject* is only used for NOT_FOUND, where the attempted name is echoed
    back so the user can retry with a correction.
    """
    if kind is ErrorKind.NOT_FOUND and subject:
        return f"I couldn't find '{subject}'. Please check the name and try again."
    return _MESSAGES[kind]


# ---------------------------------------------------------------------------
# Tagging
# ---------------------------------------------------------------------------

_RATE_LIMIT_KEYWORDS = ("429", "rate limit", "ratelimit", "too many requests", "quota")
_AUTH_KEYWORDS = (
    "401",
    "403",
    "unauthorized",
    "api key",
    "api_key",
    "authentication",
    "permission denied",
)
_CONNECTIVITY_KEYWORDS = (
    "connection",
    "connect error",
    "network",
    "unreachable",
    "name resolution",
    "ssl",
    "502",
    "503",
    "504",
    "service unavailable",
    "bad gateway",
    "408",
    "timed out",
    "request timeout",
)

_INCOMPATIBLE_KEYWORDS = (
    "tool calling",
    "function calling",
    "does not support tools",
    "doesn't support tools",
    "tools are not supported",
    "model assets are unavailable",
    "assets are unavailable",
    "no underlying assets",
)


def _describe(exc: BaseException) -> str:
    parts = [f"{type(exc).__name__}: {exc}"]
    cause = exc.__cause__ or exc.__context__
    if cause is not None and cause is not exc:
        parts.append(f"{type(cause).__name__}: {cause}")
    return " | ".join(parts).lower()


def tag_failure(exc: BaseException) -> ErrorKind:
    """Classify a transport failure by status code, type and message keywords."""
    if isinstance(exc, (asyncio.CancelledError, asyncio.TimeoutError, OperationCancelled)):
        return ErrorKind.CANCELLED

    status = getattr(exc, "status_code", None)
    if status == 429:
        return ErrorKind.RATE_LIMITED
    if status in (401, 403):
        return ErrorKind.CONFIGURATION
    if status == 408 or (isinstance(status, int) and status >= 500):
        return ErrorKind.CONNECTIVITY

    text = _describe(exc)
    if any(k in text for k in _RATE_LIMIT_KEYWORDS):
        return ErrorKind.RATE_LIMITED
    if any(k in text for k in _AUTH_KEYWORDS):
        return ErrorKind.CONFIGURATION
    if isinstance(exc, ConnectionError) or any(k in text for k in _CONNECTIVITY_KEYWORDS):
        return ErrorKind.CONNECTIVITY
    return ErrorKind.UNKNOWN


def is_tool_calling_incompatibility(exc: BaseException) -> bool:
    """True when *exc* shows the model cannot do function calling at all."""
    text = _describe(exc)
    if any(k in text for k in _INCOMPATIBLE_KEYWORDS):
        return True
    return ("unsupported" in text or "not supported" in text) and (
        "tool" in text or "function" in text
    )
