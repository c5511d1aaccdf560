"""
auth/passwords.py -- One-way password hashing (bcrypt, direct usage).

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error. Direct bcrypt usage is simpler and has no
compatibility shim.

The work factor is fixed per hasher instance (BCRYPT_ROUNDS, default 10).
Tests build a hasher with rounds=4 to keep the suite fast.

Plaintext passwords are never stored, logged, or returned by anything in
this module.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 10


class PasswordHasher:
    """Salted, deliberately slow hash + constant-time verify."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        self.rounds = rounds
        # Timing equalization dummy hash. Computed once so the first
        # unknown-email login is not measurably slower than later ones.
        self._dummy_hash = self.hash("authsession_timing_dummy")

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        bcrypt only reads 72 bytes of input, and bcrypt>=5 raises ValueError
        on anything longer. The API layer rejects such passwords before they
        get here (see api/models.py MAX_PASSWORD_BYTES).
        """
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, hashed: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
        except (ValueError, TypeError):
            return False

    def verify_dummy(self, plain: str) -> bool:
        """Burn one bcrypt verification against the dummy hash. Always False.

        Call this when the account does not exist so that response time does
        not reveal whether an email is registered.
        """
        self.verify(plain, self._dummy_hash)
        return False
