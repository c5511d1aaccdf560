"""
auth/errors.py -- Domain error taxonomy for the session core.

Every AppError carries an HTTP status and a human-readable message. The
service layer raises them; api/main.py turns them into the JSON error
envelope. Nothing below imports FastAPI -- the status code is plain data.

TokenError and its subclasses are raised by TokenCodec.verify(). They are
deliberately NOT AppErrors: callers decide how to surface them. The request
authenticator and the session manager both collapse them into
UnauthorizedError.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class BadRequestError(AppError):
    status_code = 400


class UnauthorizedError(AppError):
    status_code = 401


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    status_code = 409


# ---------------------------------------------------------------------------
# Token verification failures
# ---------------------------------------------------------------------------


class TokenError(Exception):
    """Token failed verification."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its exp claim."""


class TokenMalformedError(TokenError):
    """Token cannot be parsed, or required claims are missing."""


class TokenSignatureError(TokenError):
    """Token parses but was not signed with our secret (tampered or foreign)."""
