"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for authsession happen here. No module should
call os.getenv() or os.environ.get() directly -- build a Settings value and
pass it down, or call get_settings() at the process edge (asgi.py).

Design patterns used:
  Immutable value object: Settings is frozen. The app factory, the token codec
      and the session manager receive it explicitly at construction time; none
      of them reach for ambient global state.

  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call. Only the
      ASGI entry point uses it.

  Field validators: duration strings and log levels are validated when the
      process starts, so a bad deployment fails fast instead of at the first
      login.

Security notes:
  JWT_SECRET shorter than 32 chars is rejected outright. HS256 signing relies
  on key entropy -- a short key weakens every token issued with it.

Layer rule: core/ is the kernel. This module may not import from api/, auth/
or client/.
"""

import logging
import re
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("authsession.config")

_DEFAULT_DB_URL = f"sqlite:///{Path(__file__).resolve().parent.parent / 'auth' / 'authsession.db'}"

# Cookie max-age fallback when the refresh TTL string cannot be parsed.
DEFAULT_REFRESH_MAX_AGE = 7 * 24 * 60 * 60

_DURATION_RE = re.compile(r"^(\d+)\s*([smhd]?)$")
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 60 * 60, "d": 24 * 60 * 60}

_LOG_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "info": logging.INFO,
    "debug": logging.DEBUG,
}


def duration_seconds(value: str) -> int:
    """Convert a duration string ("15m", "7d", "3600") to seconds.

    Raises ValueError for anything that is not a positive integer with an
    optional s/m/h/d suffix.
    """
    match = _DURATION_RE.match(str(value).strip().lower())
    if match is None:
        raise ValueError(f"Invalid duration {value!r}. Expected <number>[s|m|h|d], e.g. '15m' or '7d'.")
    seconds = int(match.group(1)) * _UNIT_SECONDS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"Duration {value!r} must be positive.")
    return seconds


def parse_duration(value: Optional[str], default: int = DEFAULT_REFRESH_MAX_AGE) -> int:
    """Lenient duration parser: returns default when value is absent or unparseable."""
    if not value:
        return default
    try:
        return duration_seconds(value)
    except ValueError:
        return default


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Only JWT_SECRET is mandatory. Everything else has a default so a local
    run needs a single env var. The instance is frozen -- construct a new one
    (Settings(**overrides)) to change configuration in tests.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    environment: Literal["development", "test", "production"] = Field(
        "development", validation_alias=AliasChoices("environment", "APP_ENV")
    )
    log_level: Literal["error", "warn", "info", "debug"] = "info"
    database_url: str = _DEFAULT_DB_URL
    cors_origin: str = "*"

    # ------------------------------------------------------------------
    # Tokens
    # ------------------------------------------------------------------

    jwt_secret: str
    jwt_access_expires_in: str = "15m"
    jwt_refresh_expires_in: str = "7d"

    # ------------------------------------------------------------------
    # Passwords / abuse
    # ------------------------------------------------------------------

    bcrypt_rounds: int = 10
    rate_limit_enabled: bool = True

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @field_validator("environment", "log_level", mode="before")
    @classmethod
    def lowercase_choice(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("jwt_secret")
    @classmethod
    def validate_secret(cls, value: str) -> str:
        if len(value) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters.")
        return value

    @field_validator("jwt_access_expires_in", "jwt_refresh_expires_in")
    @classmethod
    def validate_duration(cls, value: str) -> str:
        duration_seconds(value)
        return value

    @field_validator("bcrypt_rounds")
    @classmethod
    def validate_rounds(cls, value: int) -> int:
        if not 4 <= value <= 31:
            raise ValueError("BCRYPT_ROUNDS must be between 4 and 31.")
        return value

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def secure_cookies(self) -> bool:
        """Refresh cookie carries the Secure flag only in production."""
        return self.is_production

    @property
    def access_ttl_seconds(self) -> int:
        return duration_seconds(self.jwt_access_expires_in)

    @property
    def refresh_ttl_seconds(self) -> int:
        return duration_seconds(self.jwt_refresh_expires_in)

    @property
    def refresh_cookie_max_age(self) -> int:
        return parse_duration(self.jwt_refresh_expires_in)

    @property
    def logging_level(self) -> int:
        return _LOG_LEVELS[self.log_level]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings singleton.

    Raises pydantic.ValidationError when the environment is invalid, which
    aborts startup before the server binds a port.

    In tests: prefer constructing Settings(...) directly and handing it to
    create_app(). Call get_settings.cache_clear() if you need the cached
    loader to re-read the environment.
    """
    settings = Settings()
    logger.debug("Settings loaded (environment=%s)", settings.environment)
    return settings
