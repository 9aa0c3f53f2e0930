"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for HubLink happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. github_client_id -> GITHUB_CLIENT_ID).

  @model_validator(mode="after"): DEBUG-conditional SECRET_KEY logic. Dev mode
      generates a key with a warning, production mode refuses to start without one.

Security notes:
  SECRET_KEY signs both the session cookie (which carries the OAuth state
  token) and the JWT access cookie. Keys shorter than 32 chars are rejected.

Layer rule: core/ is the kernel. This module may not import from api/, web/
or auth/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("hublink.config")


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    secret_key: str = ""
    # Public base URL of this server. The provider redirects back to
    # <root_url>/callback, so it must match the OAuth app registration.
    root_url: str = "http://localhost:8000"
    database_url: str = ""
    # Host header allow-list for TrustedHostMiddleware. JSON list in env,
    # e.g. ALLOWED_HOSTS='["ci.example.com"]'.
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    secure_cookies: bool = False
    token_expire_seconds: int = 3600

    # ------------------------------------------------------------------
    # GitHub connection (empty string means not configured)
    # ------------------------------------------------------------------

    github_client_id: str = ""
    github_client_secret: str = ""
    # Operator switch for the auth module itself, independent of whether a
    # connection exists.
    github_auth_enabled: bool = True
    github_authorize_url: str = "https://github.com/login/oauth/authorize"
    github_token_url: str = "https://github.com/login/oauth/access_token"  # noqa: S105 -- URL, not a password
    github_api_url: str = "https://api.github.com/"

    # Bound on each outbound provider call. Authorization codes expire within
    # minutes, so calls are never retried.
    provider_timeout_seconds: float = 10.0

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    callback_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
        Production mode: refuse to start if SECRET_KEY is missing.
        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self

    @property
    def callback_base_url(self) -> str:
        return self.root_url.rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
