"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, minimal logic). Stores, the
provider client and the flow do the work; these types only carry shape.

The AuthOutcome variants (NotApplicable, Authenticated, Rejected) are the only
values AuthenticationFlow.complete_login() returns. Callers dispatch on the
type -- there is no partial or pending outcome.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Union


@dataclass
class User:
    """A local account, optionally linked to a GitHub identity.

    github_user_id is the provider-assigned numeric id (stored as a string).
    It is the only link key -- username is seeded from the GitHub login at
    provisioning time but is never used to match a returning user, because a
    GitHub login can be renamed and later claimed by someone else.
    """

    username: str
    id: int | None = None
    github_user_id: str | None = None
    display_name: str | None = None
    created_at: str | None = None
    last_login: str | None = None
    is_active: bool = True


@dataclass(frozen=True)
class ProviderConnection:
    """Client credentials of the active GitHub OAuth app."""

    client_id: str
    client_secret: str = field(repr=False)


@dataclass(frozen=True)
class ProviderToken:
    """Access token returned by the provider's token endpoint."""

    access_token: str = field(repr=False)
    token_type: str = "bearer"
    scope: str = ""

    @property
    def scopes(self) -> list[str]:
        return [s for s in self.scope.replace(",", " ").split() if s]

    def describe(self) -> str:
        """Redacted summary safe for logs: never the full token or scope grant."""
        tail = self.access_token[-4:] if len(self.access_token) > 8 else ""
        return f"{self.token_type} token ...{tail} ({len(self.scopes)} scopes)"


@dataclass(frozen=True)
class RemoteIdentity:
    """The GitHub user behind an access token."""

    provider_user_id: str
    login_name: str
    token: ProviderToken
    display_name: str | None = None
    email: str | None = None

    def describe(self) -> str:
        return f"{self.login_name} (id {self.provider_user_id})"


@dataclass(frozen=True)
class UsernameConflict:
    """Provisioning failed: the username is held by an unrelated account."""

    username: str


# ---------------------------------------------------------------------------
# Authentication outcome
# ---------------------------------------------------------------------------


class RejectReason(str, Enum):
    invalid_state = "invalid_state"
    not_configured = "not_configured"
    provider_exchange_failed = "provider_exchange_failed"
    provider_profile_failed = "provider_profile_failed"
    username_conflict = "username_conflict"


@dataclass(frozen=True)
class NotApplicable:
    """The request is not a provider callback; other handlers may take it."""


@dataclass(frozen=True)
class Authenticated:
    principal: User


@dataclass(frozen=True)
class Rejected:
    """Terminal failure of one login attempt.

    message is user-facing. It never contains attacker-supplied values; the
    only interpolated value is the username from a UsernameConflict, which
    came from the provider's profile response.
    """

    reason: RejectReason
    message: str


AuthOutcome = Union[NotApplicable, Authenticated, Rejected]
