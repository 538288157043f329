"""Credential validation for the authenticated content operations.

The authenticator is a gate in front of the repository: it either
accepts a credential or raises ``AuthenticationError``.  Anything it
cannot positively verify is rejected.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence
from typing import Any, Protocol

import jwt

from routedoc.errors import AuthenticationError

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = "HS256"


class Authenticator(Protocol):
    def validate(self, credential: str | None) -> dict[str, Any]:
        """Return the verified claims or raise ``AuthenticationError``."""
        ...


class JWTAuthenticator:
    """Verifies HMAC-signed JSON Web Tokens.

    Tokens must carry a valid signature and an unexpired ``exp`` claim.
    When ``audience`` is set the ``aud`` claim must match it.
    """

    def __init__(
        self,
        secret: str,
        audience: str | None = None,
        algorithms: Sequence[str] = (DEFAULT_ALGORITHM,),
        leeway: int = 0,
    ) -> None:
        if not secret:
            raise ValueError("JWTAuthenticator requires a non-empty secret")
        self._secret = secret
        self._audience = audience
        self._algorithms = list(algorithms)
        self._leeway = leeway

    def validate(self, credential: str | None) -> dict[str, Any]:
        if not credential:
            raise AuthenticationError("Missing credential")
        try:
            return jwt.decode(
                credential,
                self._secret,
                algorithms=self._algorithms,
                audience=self._audience,
                leeway=self._leeway,
                options={"require": ["exp"], "verify_aud": self._audience is not None},
            )
        except jwt.ExpiredSignatureError as exc:
            logger.warning("Rejected expired credential")
            raise AuthenticationError("Credential has expired") from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("Rejected credential: %s", exc)
            raise AuthenticationError(f"Invalid credential: {exc}") from exc


def issue_token(
    secret: str,
    subject: str,
    ttl_seconds: int = 3600,
    audience: str | None = None,
) -> str:
    """Mint a token that ``JWTAuthenticator(secret, audience)`` accepts."""
    iat = int(time.time())
    payload: dict[str, Any] = {
        "sub": subject,
        "iat": iat,
        "exp": iat + ttl_seconds,
    }
    if audience:
        payload["aud"] = audience
    return jwt.encode(payload, secret, algorithm=DEFAULT_ALGORITHM)
