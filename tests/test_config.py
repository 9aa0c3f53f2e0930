"""
tests/test_config.py -- Settings validation and connection resolution.

Covers:
  - SECRET_KEY policy (required outside debug, minimum length)
  - SettingsConnectionProvider: active only with module enabled + both credentials
"""

from __future__ import annotations

import pytest

from auth.connection import SettingsConnectionProvider
from auth.models import ProviderConnection
from core.config import Settings

GOOD_KEY = "k" * 32


def test_secret_key_required_in_production():
    with pytest.raises(ValueError):
        Settings(debug=False, secret_key="")


def test_short_secret_key_rejected():
    with pytest.raises(ValueError):
        Settings(debug=False, secret_key="short")


def test_debug_generates_secret_key():
    assert len(Settings(debug=True, secret_key="").secret_key) >= 32


def test_callback_base_url_strips_trailing_slash():
    assert Settings(secret_key=GOOD_KEY, root_url="https://ci.example.com/").callback_base_url == (
        "https://ci.example.com"
    )


def test_active_connection_when_fully_configured():
    provider = SettingsConnectionProvider(
        Settings(secret_key=GOOD_KEY, github_client_id="cid", github_client_secret="secret")
    )
    assert provider.get_active_connection() == ProviderConnection(client_id="cid", client_secret="secret")
    assert provider.describe_problems() == []
    assert [p["name"] for p in provider.get_enabled_providers()] == ["github-oauth"]


def test_missing_secret_means_no_connection():
    provider = SettingsConnectionProvider(
        Settings(secret_key=GOOD_KEY, github_client_id="cid", github_client_secret="")
    )
    assert provider.get_active_connection() is None
    assert provider.get_enabled_providers() == []
    assert any("not specified" in p for p in provider.describe_problems())


def test_disabled_module_means_no_connection():
    provider = SettingsConnectionProvider(
        Settings(
            secret_key=GOOD_KEY,
            github_client_id="cid",
            github_client_secret="secret",
            github_auth_enabled=False,
        )
    )
    assert provider.try_find_connection() is not None
    assert provider.get_active_connection() is None
    assert any("disabled" in p for p in provider.describe_problems())


def test_connection_repr_hides_secret():
    assert "secret-value" not in repr(ProviderConnection(client_id="cid", client_secret="secret-value"))
