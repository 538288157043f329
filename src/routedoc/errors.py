"""Error taxonomy for routedoc.

``ErrorCode`` values are the wire-level codes callers branch on.  The
exception classes carry those codes when a condition has to unwind the
stack (parsing, lookups, store failures); the update coordinator turns
them into ``UpdateError`` values instead of letting them escape.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Codes reported to callers of the content operations."""

    CONTENT_MISSING_FIELD = "CONTENT_MISSING_FIELD"
    CONTENT_HAS_CHANGED = "CONTENT_HAS_CHANGED"
    ROUTE_NOT_FOUND = "ROUTE_NOT_FOUND"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"
    MALFORMED_CONTENT = "MALFORMED_CONTENT"
    RENDER_FAILURE = "RENDER_FAILURE"


class RoutedocError(Exception):
    """Base error for all routedoc operations."""


class ConfigError(RoutedocError):
    """Invalid or missing configuration."""


class AuthenticationError(RoutedocError):
    """Credential missing, expired, or rejected by the authenticator."""


# ── Content errors ───────────────────────────────────────────────


class ContentError(RoutedocError):
    """A content operation failed with a reportable code."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(self, message: str, code: ErrorCode | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class MalformedContentError(ContentError):
    """The frontmatter block could not be parsed."""

    code = ErrorCode.MALFORMED_CONTENT


class RenderFailureError(ContentError):
    """The markdown pipeline raised while rendering the body."""

    code = ErrorCode.RENDER_FAILURE


class RouteNotFoundError(ContentError):
    """No stored record declares the requested route."""

    code = ErrorCode.ROUTE_NOT_FOUND

    def __init__(self, route: str) -> None:
        super().__init__(f'No content found for route: "{route}"')
        self.route = route


# ── Store errors ─────────────────────────────────────────────────


class StoreError(RoutedocError):
    """Backing store failure."""


class KeyExistsError(StoreError):
    """``create`` was called for a key that already holds an entry."""


class KeyNotFoundError(StoreError):
    """``update`` was called for a key with no entry."""


class StoreConflictError(StoreError):
    """An optimistic update kept losing races and ran out of retries."""
