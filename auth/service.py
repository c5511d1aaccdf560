"""
auth/service.py -- Session manager: register, login, refresh, logout, profile.

State per user: Anonymous -> Authenticated -> Anonymous. A user is
Authenticated while their record holds a refresh token. Logout, or a refresh
attempt with a stored-but-invalid token, clears it. Access-token expiry alone
changes nothing server-side.

Single active session: every login and every refresh overwrites the stored
refresh token, so the previous one stops matching in find_by_refresh_token()
and becomes unusable without an explicit blacklist.

refresh() looks the token up in the store BEFORE verifying its signature.
That ordering lets us tell "never seen this token" (no side effects) from
"this is the user's stored token but it is expired or tampered" (clear it,
then fail). A forged string cannot match a stored value, so skipping the
cryptographic check on the unknown-token path is safe.

Known trust window: logout revokes the refresh token only. Access tokens
already issued stay valid until they expire (bounded by JWT_ACCESS_EXPIRES_IN).

Layer rule: no imports from api/ or client/.
"""

from __future__ import annotations

import logging

from auth.errors import ConflictError, NotFoundError, TokenError, UnauthorizedError
from auth.models import AuthResult, TokenPair, User, UserProfile
from auth.passwords import PasswordHasher
from auth.store import UserStore
from auth.tokens import TokenCodec
from core.config import Settings

logger = logging.getLogger("authsession.auth")

_INVALID_CREDENTIALS = "Invalid email or password"


class SessionManager:
    """Orchestrates the token/session lifecycle against a UserStore.

    All collaborators are injected; the manager holds no mutable state of its
    own. Safe to share across request threads.
    """

    def __init__(
        self,
        store: UserStore,
        codec: TokenCodec,
        hasher: PasswordHasher,
        settings: Settings,
    ) -> None:
        self.store = store
        self.codec = codec
        self.hasher = hasher
        self._access_ttl = settings.access_ttl_seconds
        self._refresh_ttl = settings.refresh_ttl_seconds

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def register(self, email: str, password: str, name: str | None = None) -> AuthResult:
        """Create an account and open its first session.

        Raises ConflictError if the email is taken. The store's UNIQUE
        constraint backs this check up when two registrations race.
        """
        if self.store.find_by_email(email) is not None:
            raise ConflictError("User with this email already exists")

        user = self.store.create(email, self.hasher.hash(password), name)
        result = self._start_session(user)
        logger.info("Registered user %s", user.id)
        return result

    def login(self, email: str, password: str) -> AuthResult:
        """Verify credentials and open a new session, replacing any previous one.

        Unknown email and wrong password raise the same UnauthorizedError with
        the same message, after the same bcrypt cost.
        """
        user = self.store.find_by_email(email)
        if user is None:
            self.hasher.verify_dummy(password)
            logger.info("Login failed: unknown email")
            raise UnauthorizedError(_INVALID_CREDENTIALS)
        if not self.hasher.verify(password, user.password_hash):
            logger.info("Login failed for user %s: bad password", user.id)
            raise UnauthorizedError(_INVALID_CREDENTIALS)

        result = self._start_session(user)
        logger.info("User %s logged in", user.id)
        return result

    def refresh(self, refresh_token: str) -> TokenPair:
        """Exchange the active refresh token for a brand-new pair (rotation)."""
        user = self.store.find_by_refresh_token(refresh_token)
        if user is None:
            raise UnauthorizedError("Invalid refresh token")

        try:
            self.codec.verify(refresh_token)
        except TokenError as exc:
            # Recognized but unusable: revoke it so it cannot be retried.
            self.store.set_refresh_token(user.id, None)
            logger.info("Refresh rejected for user %s (%s); session cleared", user.id, type(exc).__name__)
            raise UnauthorizedError("Invalid or expired refresh token") from exc

        tokens = self._start_session(user).tokens
        logger.debug("Rotated refresh token for user %s", user.id)
        return tokens

    def logout(self, user_id: str) -> None:
        """Clear the stored refresh token. Idempotent."""
        self.store.set_refresh_token(user_id, None)
        logger.info("User %s logged out", user_id)

    def get_profile(self, user_id: str) -> UserProfile:
        user = self.store.find_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user.to_profile()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _issue_pair(self, user_id: str) -> TokenPair:
        return TokenPair(
            access_token=self.codec.issue(user_id, self._access_ttl),
            refresh_token=self.codec.issue(user_id, self._refresh_ttl),
        )

    def _start_session(self, user: User) -> AuthResult:
        """Store a fresh refresh token; the profile is read back after the write."""
        tokens = self._issue_pair(user.id)
        self.store.set_refresh_token(user.id, tokens.refresh_token)
        # set_refresh_token stamps updated_at.
        current = self.store.find_by_id(user.id) or user
        return AuthResult(user=current.to_profile(), tokens=tokens)
