"""
tests/conftest.py -- Shared test fixtures for HubLink.

This module provides:
  - FakeGitHubClient: in-process stand-in for the provider with call counters
  - user_store: isolated in-memory account store per test
  - connections / unconfigured_connections: settings-backed connection providers
  - flow: AuthenticationFlow wired to the fake client and the test store
  - web_client: TestClient over the full ASGI app with a patched lifespan

Design: Named shared-memory SQLite URIs (not plain :memory:) are required
because TestClient runs sync route handlers in a thread pool. Plain :memory:
DBs are per-connection and would present a blank schema to each worker thread.

Environment must be set before any api/auth/core import so get_settings()
auto-generates SECRET_KEY, accepts the TestClient host and does not rate
limit the callback during the test run.
"""

from __future__ import annotations

import os
import uuid
from collections.abc import Generator
from contextlib import asynccontextmanager

os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("ALLOWED_HOSTS", '["testserver"]')
os.environ.setdefault("CALLBACK_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient

from asgi import app
from auth.connection import SettingsConnectionProvider
from auth.errors import ProviderExchangeError, ProviderProfileError
from auth.flow import AuthenticationFlow
from auth.linker import IdentityLinker
from auth.models import ProviderToken, RemoteIdentity
from auth.provider import GitHubClient
from auth.store import UserStore
from core.config import Settings

ROOT_URL = "http://localhost:8000"
FAKE_ACCESS_TOKEN = "gho_fakeaccesstoken0123456789"  # noqa: S105 -- test value


class FakeGitHubClient:
    """IdentityProviderClient double.

    URL building is delegated to the real GitHubClient (pure, no network).
    The two network calls return canned values, or raise the configured
    error, and count how often they were invoked.
    """

    def __init__(self, user_id: str = "42", login: str = "alice") -> None:
        self.user_id = user_id
        self.login = login
        self.exchange_error: Exception | None = None
        self.profile_error: Exception | None = None
        self.exchange_calls: list[tuple[str, str, str, str]] = []
        self.profile_calls = 0
        self._urls = GitHubClient()

    def build_authorization_redirect(self, client_id, scope, callback_base_url, state) -> str:
        return self._urls.build_authorization_redirect(client_id, scope, callback_base_url, state)

    def exchange_code_for_token(self, code, client_id, client_secret, callback_base_url) -> ProviderToken:
        self.exchange_calls.append((code, client_id, client_secret, callback_base_url))
        if self.exchange_error is not None:
            raise self.exchange_error
        return ProviderToken(access_token=FAKE_ACCESS_TOKEN, token_type="bearer", scope="repo,user")

    def fetch_profile(self, token: ProviderToken) -> RemoteIdentity:
        self.profile_calls += 1
        if self.profile_error is not None:
            raise self.profile_error
        return RemoteIdentity(provider_user_id=self.user_id, login_name=self.login, token=token)

    def fail_exchange(self) -> None:
        self.exchange_error = ProviderExchangeError("Token endpoint rejected the code: bad_verification_code")

    def fail_profile(self) -> None:
        self.profile_error = ProviderProfileError("Profile request failed: ConnectionError")


def _memory_db_url(prefix: str) -> str:
    return f"sqlite:///file:{prefix}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


def _configured_settings() -> Settings:
    return Settings(github_client_id="test-client-id", github_client_secret="test-client-secret", root_url=ROOT_URL)


# ---------------------------------------------------------------------------
# Unit-level fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def user_store() -> Generator[UserStore, None, None]:
    store = UserStore(db_url=_memory_db_url("test_auth"))
    yield store
    store.close()


@pytest.fixture
def fake_github() -> FakeGitHubClient:
    return FakeGitHubClient()


@pytest.fixture
def connections() -> SettingsConnectionProvider:
    return SettingsConnectionProvider(_configured_settings())


@pytest.fixture
def unconfigured_connections() -> SettingsConnectionProvider:
    return SettingsConnectionProvider(Settings(github_client_id="", github_client_secret=""))


@pytest.fixture
def flow(fake_github, connections, user_store) -> AuthenticationFlow:
    return AuthenticationFlow(
        client=fake_github,
        connections=connections,
        linker=IdentityLinker(user_store),
        callback_base_url=ROOT_URL,
    )


# ---------------------------------------------------------------------------
# Integration fixture -- one TestClient per test module
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, connections: SettingsConnectionProvider, fake: FakeGitHubClient):
    """Return a lifespan that wires the test store, connection and fake client into app.state."""

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.connections = connections
        app.state.auth_flow = AuthenticationFlow(
            client=fake,
            connections=connections,
            linker=IdentityLinker(user_store),
            callback_base_url=ROOT_URL,
        )
        yield

    return test_lifespan


@pytest.fixture(scope="module")
def web_client() -> Generator[tuple[TestClient, FakeGitHubClient, UserStore], None, None]:
    """Yield (client, fake_github, user_store) for route integration tests.

    follow_redirects=False is essential: tests assert on redirect locations,
    which are invisible once the client follows the redirect.
    """
    user_store = UserStore(db_url=_memory_db_url("test_web"))
    fake = FakeGitHubClient()
    connections = SettingsConnectionProvider(_configured_settings())

    app.router.lifespan_context = _patch_lifespan(user_store, connections, fake)

    with TestClient(app, follow_redirects=False, raise_server_exceptions=True) as client:
        yield client, fake, user_store

    user_store.close()
