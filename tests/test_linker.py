"""
tests/test_linker.py -- IdentityLinker against a MagicMock account store.

Checks the collaborator calls the linker makes (and does not make) in each
branch of find-or-create.
"""

from __future__ import annotations

from unittest.mock import MagicMock

from auth.linker import IdentityLinker
from auth.models import ProviderToken, RemoteIdentity, User, UsernameConflict

TOKEN = ProviderToken(access_token="gho_token", scope="repo")
REMOTE = RemoteIdentity(provider_user_id="42", login_name="alice", token=TOKEN, display_name="Alice")


def test_found_account_is_returned_and_token_recorded():
    store = MagicMock()
    existing = User(username="alice-local", id=7, github_user_id="42")
    store.find_by_provider_id.return_value = existing

    result = IdentityLinker(store).resolve(REMOTE)

    assert result is existing
    store.find_by_provider_id.assert_called_once_with("42")
    store.create_account.assert_not_called()
    store.record_token_association.assert_called_once_with(existing, "alice", TOKEN)


def test_new_account_is_provisioned_from_login_name():
    store = MagicMock()
    store.find_by_provider_id.return_value = None
    created = User(username="alice", id=8, github_user_id="42")
    store.create_account.return_value = created

    result = IdentityLinker(store).resolve(REMOTE)

    assert result is created
    store.create_account.assert_called_once_with("alice", "42", display_name="Alice")
    store.record_token_association.assert_called_once_with(created, "alice", TOKEN)


def test_conflict_is_returned_without_recording_token(caplog):
    store = MagicMock()
    store.find_by_provider_id.return_value = None
    store.create_account.return_value = UsernameConflict(username="alice")

    result = IdentityLinker(store).resolve(REMOTE)

    assert result == UsernameConflict(username="alice")
    store.record_token_association.assert_not_called()
    assert store.create_account.call_count == 1
    assert any("alice" in r.getMessage() and r.levelname == "WARNING" for r in caplog.records)
