"""
auth/tokens.py -- Token codec: issue and verify signed, expiring bearer tokens.

Security design decisions:
  JWT: python-jose with HS256. One shared secret and one algorithm for both
       access and refresh tokens; only the lifetime differs. The kind of a
       token is the caller's concern and is not encoded as a claim.

  Claims: sub (user id), iat, exp, jti. jti is random per token so two
       tokens minted for the same user within the same second still differ.
       Refresh rotation depends on that: the store matches refresh tokens by
       exact string.

  Verification is a pure function of (token, now, secret). No store lookup.
       Failures raise distinct TokenError subclasses so callers can tell
       expired from tampered from garbage, even though the HTTP layer
       collapses all of them into 401.

  Expiry is checked here rather than inside jose so that `now` can be
       injected. Tests mint tokens in the past instead of sleeping.

Layer rule: no imports from api/ or client/. Import from core/ is allowed.
"""

from __future__ import annotations

import secrets
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from jose import JWTError, jwt
from jose.exceptions import JWTClaimsError

from auth.errors import TokenExpiredError, TokenMalformedError, TokenSignatureError

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"

# Expiry is enforced by TokenCodec.verify() against an injectable clock.
_DECODE_OPTIONS = {"verify_exp": False, "verify_aud": False}


def _timestamp(now: datetime | None) -> int:
    return int((now or datetime.now(timezone.utc)).timestamp())


class TokenCodec:
    """Signs and verifies compact JWTs carrying a subject identifier.

    Usage:
        codec = TokenCodec(settings.jwt_secret)
        token = codec.issue(user.id, settings.access_ttl_seconds)
        user_id = codec.verify(token)   # raises TokenError subclasses
    """

    def __init__(self, secret: str, algorithm: str = _ALGORITHM) -> None:
        self._secret = secret
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(settings.jwt_secret)

    def issue(self, subject: str, ttl_seconds: int, now: datetime | None = None) -> str:
        """Encode a signed token for subject that expires ttl_seconds after now."""
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        issued_at = _timestamp(now)
        payload = {
            "sub": str(subject),
            "iat": issued_at,
            "exp": issued_at + ttl_seconds,
            "jti": secrets.token_hex(16),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str, now: datetime | None = None) -> str:
        """Return the token subject, or raise.

        Raises:
            TokenMalformedError: not a JWT, or claims missing / mistyped.
            TokenSignatureError: signature does not match our secret.
            TokenExpiredError:   signature fine, but now >= exp.
        """
        try:
            jwt.get_unverified_claims(token)
        except (JWTError, AttributeError, TypeError) as exc:
            raise TokenMalformedError("Token is malformed") from exc

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm], options=_DECODE_OPTIONS)
        except JWTClaimsError as exc:
            raise TokenMalformedError(str(exc)) from exc
        except JWTError as exc:
            raise TokenSignatureError("Token signature is invalid") from exc

        subject = payload.get("sub")
        expires_at = payload.get("exp")
        if not isinstance(subject, str) or not subject:
            raise TokenMalformedError("Token has no subject")
        if not isinstance(expires_at, (int, float)):
            raise TokenMalformedError("Token has no expiry")
        if _timestamp(now) >= expires_at:
            raise TokenExpiredError("Token has expired")
        return subject
