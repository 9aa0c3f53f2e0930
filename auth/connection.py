"""
auth/connection.py -- Resolves the active GitHub connection.

A connection is "active" when the auth module is enabled AND both the client
ID and client secret are configured. Anything less means the login link must
not be offered and a callback must be rejected as not_configured.

Provider metadata (name, label, description) is exposed for the login page
and GET /api/v1/auth/providers, the same way the provider list is rendered
dynamically from configuration.
"""

from __future__ import annotations

import logging

from auth.models import ProviderConnection
from core.config import Settings, get_settings

logger = logging.getLogger("hublink.auth.connection")

PROVIDER_NAME = "github-oauth"
PROVIDER_LABEL = "GitHub OAuth"
PROVIDER_DESCRIPTION = "Allows authentication using GitHub account"

# Browser entry point of the login flow (web/routes.py).
LOGIN_PATH = "/login/github"


class SettingsConnectionProvider:
    """Connection collaborator backed by core.config.Settings."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings

    @property
    def settings(self) -> Settings:
        return self._settings if self._settings is not None else get_settings()

    def is_auth_module_configured(self) -> bool:
        return self.settings.github_auth_enabled

    def try_find_connection(self) -> ProviderConnection | None:
        """Return the configured client credentials, ignoring the module switch."""
        cfg = self.settings
        if cfg.github_client_id and cfg.github_client_secret:
            return ProviderConnection(client_id=cfg.github_client_id, client_secret=cfg.github_client_secret)
        return None

    def get_active_connection(self) -> ProviderConnection | None:
        """Return the connection to log in with, or None if login is unavailable."""
        if not self.is_auth_module_configured():
            logger.debug("GitHub auth module is disabled")
            return None
        return self.try_find_connection()

    def describe_problems(self) -> list[str]:
        """Human-readable configuration problems; empty when login is available."""
        problems: list[str] = []
        if not self.is_auth_module_configured():
            problems.append("GitHub Authentication is disabled (GITHUB_AUTH_ENABLED=false)")
        if self.try_find_connection() is None:
            problems.append(
                "GitHub Authentication is inactive as the GitHub.com connection is not specified "
                "(set GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET)"
            )
        return problems

    def get_enabled_providers(self) -> list[dict]:
        """Return [{"name", "label", "description"}] for the active provider, or []."""
        if self.get_active_connection() is None:
            return []
        return [{"name": PROVIDER_NAME, "label": PROVIDER_LABEL, "description": PROVIDER_DESCRIPTION}]
