"""
Exceptions raised by rewrite providers and snapshot I/O
"""
from __future__ import annotations

from typing import Optional


class RewriteError(RuntimeError):
    """Raised when a batch could not be rewritten."""

    status = 0

    def __init__(self, message: str, status: Optional[int] = None, body: str = ""):
        super().__init__(message)
        if status is not None:
            self.status = status
        self.body = body


class MissingCredentialError(RewriteError):
    """No API key configured; the batch is never sent."""

    status = 401


class UnauthorizedError(RewriteError):
    status = 401


class RateLimitedError(RewriteError):
    status = 429


class MalformedResponseError(RewriteError):
    """Bad request (400) or a provider response that could not be parsed."""

    status = 400


class UnknownRewriteError(RewriteError):
    """Network failure, timeout or any other status."""

    status = 0


class SnapshotError(RuntimeError):
    """Raised when a page snapshot cannot be read or written."""


def classify_status(status: int, message: str, body: str = "") -> RewriteError:
    if status == 401:
        return UnauthorizedError(message, status=status, body=body)
    if status == 429:
        return RateLimitedError(message, status=status, body=body)
    if status == 400:
        return MalformedResponseError(message, status=status, body=body)
    return UnknownRewriteError(message, status=status, body=body)


def friendly_message(error: Exception) -> str:
    """User-facing advisory text for a failed batch"""
    if isinstance(error, MissingCredentialError):
        return "No API key configured. Set one before headlines can be rewritten."
    status = getattr(error, "status", 0) or 0
    if status == 401:
        return "Unauthorized (401). Please enter a valid API key."
    if status == 429:
        return (
            "Rate limited by API (429). Try again in a minute. You can also lower "
            "max_batch or process only visible headlines to reduce bursts."
        )
    if status == 400:
        return (
            "Bad request (400). The page may contain text the API could not parse. "
            "Try again, or disable auto-detect for this site and use narrower selectors."
        )
    suffix = f" ({status})" if status else ""
    return f"Unknown error{suffix}. Check your network or try again."
