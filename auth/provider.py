"""
auth/provider.py -- Outbound calls to GitHub, the identity provider.

Three operations:
  build_authorization_redirect() -- pure URL construction, no network call.
  exchange_code_for_token()      -- POST to the token endpoint.
  fetch_profile()                -- GET /user with the access token.

The two network calls are bounded by a timeout and never retried. An
authorization code is single-use and expires within minutes; a failed exchange
fails the whole login attempt and the user starts again from begin-login.

Failures are raised as ProviderExchangeError / ProviderProfileError. Response
bodies are not included in exception messages -- a token endpoint error body
can echo the code or client id back.

Layer rule: no imports from api/, web/ or core/. Endpoint URLs and the timeout
are passed in by the caller (see GitHubClient.from_settings in api/main.py).
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urljoin

import requests
from authlib.oauth2.rfc6749.parameters import prepare_grant_uri

from auth.errors import ProviderExchangeError, ProviderProfileError
from auth.models import ProviderToken, RemoteIdentity

logger = logging.getLogger("hublink.auth.provider")

GITHUB_AUTHORIZE_URL = "https://github.com/login/oauth/authorize"
GITHUB_TOKEN_URL = "https://github.com/login/oauth/access_token"  # noqa: S105 -- URL, not a password
GITHUB_API_URL = "https://api.github.com/"

# Fixed set of permissions requested on every login. Not user-configurable.
DEFAULT_SCOPE: tuple[str, ...] = ("user", "public_repo", "repo", "repo:status", "write:repo_hook")

CALLBACK_PATH = "/callback"


def callback_url(callback_base_url: str) -> str:
    return callback_base_url.rstrip("/") + CALLBACK_PATH


class GitHubClient:
    """IdentityProviderClient for github.com or a GitHub Enterprise server.

    Usage:
        client = GitHubClient()
        url = client.build_authorization_redirect(client_id, DEFAULT_SCOPE, root_url, state)
        token = client.exchange_code_for_token(code, client_id, client_secret, root_url)
        identity = client.fetch_profile(token)
    """

    def __init__(
        self,
        authorize_url: str = GITHUB_AUTHORIZE_URL,
        token_url: str = GITHUB_TOKEN_URL,
        api_url: str = GITHUB_API_URL,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.authorize_url = authorize_url
        self.token_url = token_url
        self.api_url = api_url if api_url.endswith("/") else api_url + "/"
        self.timeout = timeout
        if session is None:
            # Shared session for connection pooling. 3 redirect hops is
            # generous for two known endpoints and limits redirect-chain SSRF.
            session = requests.Session()
            session.max_redirects = 3
        self._session = session

    @classmethod
    def from_settings(cls, settings) -> GitHubClient:
        return cls(
            authorize_url=settings.github_authorize_url,
            token_url=settings.github_token_url,
            api_url=settings.github_api_url,
            timeout=settings.provider_timeout_seconds,
        )

    # ------------------------------------------------------------------
    # Authorization redirect
    # ------------------------------------------------------------------

    def build_authorization_redirect(
        self,
        client_id: str,
        scope: tuple[str, ...] | list[str],
        callback_base_url: str,
        state: str,
    ) -> str:
        """Return the provider authorization URL the browser is redirected to."""
        return prepare_grant_uri(
            self.authorize_url,
            client_id,
            "code",
            redirect_uri=callback_url(callback_base_url),
            scope=tuple(scope),
            state=state,
        )

    # ------------------------------------------------------------------
    # Code -> token exchange
    # ------------------------------------------------------------------

    def exchange_code_for_token(
        self,
        code: str,
        client_id: str,
        client_secret: str,
        callback_base_url: str,
    ) -> ProviderToken:
        """Redeem an authorization code at the token endpoint.

        GitHub answers HTTP 200 with an {"error": ...} body for a bad or
        expired code, so the payload is checked as well as the status.

        Raises:
            ProviderExchangeError: network failure, non-2xx, malformed payload.
        """
        logger.debug("Exchanging authorization code at %s", self.token_url)
        try:
            resp = self._session.post(
                self.token_url,
                data={
                    "grant_type": "authorization_code",
                    "code": code,
                    "client_id": client_id,
                    "client_secret": client_secret,
                    "redirect_uri": callback_url(callback_base_url),
                },
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            resp.raise_for_status()
            payload = resp.json()
        except requests.RequestException as exc:
            raise ProviderExchangeError(f"Token endpoint request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise ProviderExchangeError("Token endpoint returned a non-JSON response") from exc

        if not isinstance(payload, dict):
            raise ProviderExchangeError("Token endpoint returned an unexpected payload")
        if "error" in payload:
            # The error code is a fixed vocabulary (bad_verification_code,
            # incorrect_client_credentials, ...), safe to log.
            raise ProviderExchangeError(f"Token endpoint rejected the code: {payload['error']}")
        access_token = payload.get("access_token")
        if not access_token or not isinstance(access_token, str):
            raise ProviderExchangeError("Token endpoint response has no access_token")

        return ProviderToken(
            access_token=access_token,
            token_type=str(payload.get("token_type") or "bearer"),
            scope=str(payload.get("scope") or ""),
        )

    # ------------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------------

    def fetch_profile(self, token: ProviderToken) -> RemoteIdentity:
        """Fetch the GitHub user the access token belongs to.

        Raises:
            ProviderProfileError: network failure, non-2xx, malformed payload.
        """
        try:
            resp = self._session.get(
                urljoin(self.api_url, "user"),
                headers={
                    "Accept": "application/vnd.github+json",
                    "Authorization": f"Bearer {token.access_token}",
                },
                timeout=self.timeout,
            )
            resp.raise_for_status()
            profile: Any = resp.json()
        except requests.RequestException as exc:
            raise ProviderProfileError(f"Profile request failed: {type(exc).__name__}") from exc
        except ValueError as exc:
            raise ProviderProfileError("Profile endpoint returned a non-JSON response") from exc

        if not isinstance(profile, dict):
            raise ProviderProfileError("Profile endpoint returned an unexpected payload")
        user_id = profile.get("id")
        login = profile.get("login")
        if user_id is None or isinstance(user_id, bool) or not login:
            raise ProviderProfileError("Profile response is missing id or login")

        return RemoteIdentity(
            provider_user_id=str(user_id),
            login_name=str(login),
            token=token,
            display_name=profile.get("name") or None,
            email=profile.get("email") or None,
        )
