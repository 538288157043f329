"""Route normalization.

Routes become URL paths, so they are forced into a single shape: no
whitespace and lower case.  This is a convenience, not a security check.
"""

from __future__ import annotations

import re

_WHITESPACE_RE = re.compile(r"\s+")


def normalize_route(route: object) -> str:
    """Return the canonical storage key for ``route``.

    Each run of whitespace becomes a single hyphen and the result is
    lower-cased.  Non-string values (YAML may hand back ints or dates)
    are converted with ``str()`` first.  Idempotent.
    """
    text = route if isinstance(route, str) else str(route)
    return _WHITESPACE_RE.sub("-", text).lower()


def routes_match(left: object, right: object) -> bool:
    """Two routes are the same iff their normalized forms are equal."""
    return normalize_route(left) == normalize_route(right)
