"""
auth/dependencies.py -- Request authenticator and its FastAPI Depends() helper.

Credential carriers, checked in priority order:
  1. Authorization: Bearer <token> header -- what the client coordinator sends.
  2. "access_token" cookie -- for browser callers that keep the token there.

Every failure (no credential, wrong scheme, expired, tampered, malformed)
surfaces as the same 401 so clients get one uniform retry trigger. The
distinction between failure kinds stays available in the TokenError raised
by the codec, and is logged at debug level only.

On success the verified identity is RETURNED as an AuthContext value and
threaded into route handlers by FastAPI. Nothing is written onto the request.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import logging

from fastapi import Request

from auth.errors import TokenError, UnauthorizedError
from auth.models import AuthContext
from auth.tokens import TokenCodec

logger = logging.getLogger("authsession.auth")

_BEARER_PREFIX = "Bearer "
ACCESS_COOKIE_NAME = "access_token"


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an Authorization header value, or None.

    None means the header is absent, uses another scheme, or has an empty
    token after the prefix.
    """
    if not authorization or not authorization.startswith(_BEARER_PREFIX):
        return None
    token = authorization[len(_BEARER_PREFIX) :].strip()
    return token or None


class Authenticator:
    """Per-request gate: bearer credential in, AuthContext out (or 401)."""

    def __init__(self, codec: TokenCodec) -> None:
        self.codec = codec

    def authenticate(self, credential: str | None) -> AuthContext:
        if not credential:
            raise UnauthorizedError("No token provided")
        try:
            user_id = self.codec.verify(credential)
        except TokenError as exc:
            logger.debug("Access token rejected: %s", type(exc).__name__)
            raise UnauthorizedError("Invalid or expired token") from exc
        return AuthContext(user_id=user_id)


def get_auth_context(request: Request) -> AuthContext:
    """Require a valid access token. Raises UnauthorizedError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/protected")
        async def route(ctx: AuthContext = Depends(get_auth_context)): ...
    """
    authenticator: Authenticator = request.app.state.authenticator
    header = request.headers.get("Authorization")
    if header:
        # A present-but-malformed header is not silently ignored in favour
        # of the cookie.
        return authenticator.authenticate(extract_bearer_token(header))
    return authenticator.authenticate(request.cookies.get(ACCESS_COOKIE_NAME))
