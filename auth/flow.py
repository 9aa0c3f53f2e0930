"""
auth/flow.py -- The GitHub login state machine.

Two public operations:

  begin_login(session) -> redirect URL
      Issue a state token into the session and build the provider
      authorization URL. Raises NotConfiguredError without an active connection.

  complete_login(session, code, state) -> AuthOutcome
      Started -> StateChecked -> CodeExchanged -> ProfileFetched -> Linked -> Done

      no code                    -> NotApplicable
      missing/mismatched state   -> Rejected(invalid_state)   (no exchange call)
      no active connection       -> Rejected(not_configured)
      token exchange failed      -> Rejected(provider_exchange_failed)
      profile fetch failed       -> Rejected(provider_profile_failed)
      username taken             -> Rejected(username_conflict)
      otherwise                  -> Authenticated(user)

Nothing is persisted between states. Any failure ends the attempt and the user
restarts from begin_login(), which issues a fresh state token.

Logging: the logger is injected (defaults to "hublink.auth.flow"). Tokens and
profiles are only logged through their describe() summaries. An invalid state
value is truncated before it reaches the log and never reaches the response.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Protocol

from auth.errors import NotConfiguredError, ProviderExchangeError, ProviderProfileError
from auth.linker import IdentityLinker
from auth.models import (
    Authenticated,
    AuthOutcome,
    NotApplicable,
    ProviderConnection,
    ProviderToken,
    Rejected,
    RejectReason,
    RemoteIdentity,
    User,
    UsernameConflict,
)
from auth.provider import DEFAULT_SCOPE
from auth.state import StateTokenGuard

# Generic, non-echoing messages for the user-facing rejection page.
MSG_INVALID_STATE = "GitHub login error: the login request is invalid or has expired. Please try again."
MSG_NOT_CONFIGURED = "GitHub login is not configured on this server."
MSG_EXCHANGE_FAILED = "GitHub login error: could not obtain an access token from GitHub. Please try again."
MSG_PROFILE_FAILED = "GitHub login error: could not read your GitHub profile. Please try again."


class ConnectionProvider(Protocol):
    def get_active_connection(self) -> ProviderConnection | None: ...


class IdentityProviderClient(Protocol):
    def build_authorization_redirect(
        self, client_id: str, scope: tuple[str, ...], callback_base_url: str, state: str
    ) -> str: ...

    def exchange_code_for_token(
        self, code: str, client_id: str, client_secret: str, callback_base_url: str
    ) -> ProviderToken: ...

    def fetch_profile(self, token: ProviderToken) -> RemoteIdentity: ...


def _clip(value: str, limit: int = 16) -> str:
    return value if len(value) <= limit else value[:limit] + "..."


class AuthenticationFlow:
    """Orchestrates StateTokenGuard, the provider client and IdentityLinker.

    Usage:
        flow = AuthenticationFlow(GitHubClient(), SettingsConnectionProvider(), IdentityLinker(store),
                                  callback_base_url="https://ci.example.com")
        url = flow.begin_login(request.session)
        ...
        outcome = flow.complete_login(request.session, code, state)
    """

    def __init__(
        self,
        client: IdentityProviderClient,
        connections: ConnectionProvider,
        linker: IdentityLinker,
        callback_base_url: str,
        state_guard: StateTokenGuard | None = None,
        scope: tuple[str, ...] = DEFAULT_SCOPE,
        logger: logging.Logger | None = None,
    ) -> None:
        self.client = client
        self.connections = connections
        self.linker = linker
        self.callback_base_url = callback_base_url
        self.state_guard = state_guard or StateTokenGuard()
        self.scope = scope
        self.logger = logger or logging.getLogger("hublink.auth.flow")

    def begin_login(self, session: MutableMapping[str, str]) -> str:
        connection = self.connections.get_active_connection()
        if connection is None:
            raise NotConfiguredError("Attempt to login via GitHub OAuth while the GitHub connection is not configured")
        state = self.state_guard.issue(session)
        self.logger.debug("GitHub login started, state token issued")
        return self.client.build_authorization_redirect(connection.client_id, self.scope, self.callback_base_url, state)

    def complete_login(
        self,
        session: MutableMapping[str, str],
        code: str | None,
        state: str | None,
    ) -> AuthOutcome:
        # Started
        if not code:
            self.logger.debug("No 'code' parameter found in the request, skip GitHub authentication")
            return NotApplicable()

        if not state:
            self.logger.warning("Attempt to login using GitHub with empty 'state' parameter")
            # Drop any pending token so it cannot be paired with a later request.
            self.state_guard.validate(session, None)
            return Rejected(RejectReason.invalid_state, MSG_INVALID_STATE)
        if not self.state_guard.validate(session, state):
            self.logger.warning("Attempt to login using GitHub with invalid 'state' parameter: %s", _clip(state))
            return Rejected(RejectReason.invalid_state, MSG_INVALID_STATE)
        # StateChecked

        connection = self.connections.get_active_connection()
        if connection is None:
            self.logger.error("GitHub callback received while the GitHub connection is not configured")
            return Rejected(RejectReason.not_configured, MSG_NOT_CONFIGURED)

        try:
            token = self.client.exchange_code_for_token(
                code, connection.client_id, connection.client_secret, self.callback_base_url
            )
        except ProviderExchangeError as exc:
            self.logger.warning("GitHub token exchange failed: %s", exc)
            return Rejected(RejectReason.provider_exchange_failed, MSG_EXCHANGE_FAILED)
        self.logger.debug("GitHub token received: %s", token.describe())
        # CodeExchanged

        try:
            remote = self.client.fetch_profile(token)
        except ProviderProfileError as exc:
            self.logger.warning("GitHub profile fetch failed: %s", exc)
            return Rejected(RejectReason.provider_profile_failed, MSG_PROFILE_FAILED)
        self.logger.debug("GitHub user obtained: %s", remote.describe())
        # ProfileFetched

        linked: User | UsernameConflict = self.linker.resolve(remote)
        if isinstance(linked, UsernameConflict):
            return Rejected(
                RejectReason.username_conflict,
                f"User with username '{linked.username}' already exists",
            )
        # Linked

        self.logger.info("GitHub user %s authenticated as %s", remote.describe(), linked.username)
        return Authenticated(principal=linked)
