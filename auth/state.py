"""
auth/state.py -- Session-bound OAuth state token (CSRF protection).

The state value ties the callback to the browser session that started the
login. It is generated on begin-login, stored in the session, sent to the
provider in the authorization URL, and compared when the provider redirects
back.

The session is passed in explicitly as a MutableMapping. In the web layer this
is Starlette's request.session (a signed cookie), in tests a plain dict. No
module-level or ambient session access.

Security notes:
  - 256 bits from secrets.token_urlsafe(32).
  - Comparison uses hmac.compare_digest.
  - The stored token is single-use: every validate() call removes it, whether
    the comparison succeeds or not. A replayed callback, or a second attempt
    after a forged one, finds no token and is rejected.
  - Issuing again for the same session overwrites the previous token, so a
    login restarted in another tab invalidates the older attempt.

Layer rule: no imports from api/, web/ or core/.
"""

from __future__ import annotations

import hmac
import secrets
from collections.abc import MutableMapping

STATE_SESSION_KEY = "hublink.github_auth.state"

_STATE_BYTES = 32


class StateTokenGuard:
    def __init__(self, session_key: str = STATE_SESSION_KEY) -> None:
        self.session_key = session_key

    def issue(self, session: MutableMapping[str, str]) -> str:
        """Generate a fresh state token, store it in the session and return it."""
        state = secrets.token_urlsafe(_STATE_BYTES)
        session[self.session_key] = state
        return state

    def validate(self, session: MutableMapping[str, str], supplied_state: str | None) -> bool:
        """Return True only if supplied_state matches the token stored for this session."""
        expected = session.pop(self.session_key, None)
        if not supplied_state or not expected:
            return False
        return hmac.compare_digest(expected.encode("utf-8"), supplied_state.encode("utf-8"))
