"""
auth/linker.py -- Resolve a GitHub identity to a local account.

Find-or-create keyed on the provider user ID:
  1. An account already linked to the GitHub ID -> return it.
  2. Otherwise provision a new account named after the GitHub login and
     linked to the GitHub ID.
  3. If that username belongs to an unrelated account, return
     UsernameConflict. No merge, no overwrite, no retry with a modified name.
     Resolving the collision is left to an operator.

The GitHub login is a display hint and provisioning seed only. Matching a
returning user by login would hand the account to whoever registers the name
after the original owner renames theirs.

In every success case the access token is recorded against the account.
"""

from __future__ import annotations

import logging
from typing import Protocol

from auth.models import ProviderToken, RemoteIdentity, User, UsernameConflict


class AccountStore(Protocol):
    def find_by_provider_id(self, provider_user_id: str) -> User | None: ...

    def create_account(
        self, login_name: str, provider_user_id: str, display_name: str | None = None
    ) -> User | UsernameConflict: ...

    def record_token_association(self, user: User, github_login: str, token: ProviderToken) -> None: ...


class IdentityLinker:
    def __init__(self, accounts: AccountStore, logger: logging.Logger | None = None) -> None:
        self.accounts = accounts
        self.logger = logger or logging.getLogger("hublink.auth.linker")

    def resolve(self, remote: RemoteIdentity) -> User | UsernameConflict:
        found = self.accounts.find_by_provider_id(remote.provider_user_id)
        if found is not None:
            self.accounts.record_token_association(found, remote.login_name, remote.token)
            self.logger.debug(
                "Local account found for GitHub user %s: %s (id %s)", remote.describe(), found.username, found.id
            )
            return found

        created = self.accounts.create_account(
            remote.login_name, remote.provider_user_id, display_name=remote.display_name
        )
        if isinstance(created, UsernameConflict):
            self.logger.warning("GitHub login error: user with username '%s' already exists", created.username)
            return created

        self.logger.debug(
            "New local account created for GitHub user %s: %s (id %s)", remote.describe(), created.username, created.id
        )
        self.accounts.record_token_association(created, remote.login_name, remote.token)
        return created
