"""
auth/models.py -- Domain dataclasses for the session core.

Pattern: Data class (pure data container, almost no logic). Stores and the
session manager do the work; these types only own the shape.

Sanitization lives here: User.to_profile() is the ONLY way a user leaves the
core. UserProfile has no password hash and no refresh token field, so they
cannot leak through any response built from it.

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A stored account.

    refresh_token is either None or exactly the last refresh token issued to
    this user. Clearing it revokes every outstanding refresh token at once;
    already-issued access tokens stay valid until their own expiry.
    """

    id: str
    email: str  # unique, case-sensitive as stored
    password_hash: str
    name: str | None = None
    refresh_token: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    def to_profile(self) -> UserProfile:
        return UserProfile(
            id=self.id,
            email=self.email,
            name=self.name,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class UserProfile:
    """Sanitized user representation safe to return to callers."""

    id: str
    email: str
    name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class AuthResult:
    """Outcome of register/login: the sanitized user plus a fresh token pair."""

    user: UserProfile
    tokens: TokenPair


@dataclass(frozen=True)
class AuthContext:
    """Verified identity for one request, produced by the request authenticator."""

    user_id: str
