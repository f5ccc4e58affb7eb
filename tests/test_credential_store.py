"""Tests for the WebAuthn user directory."""

import json

import pytest

from storage.credential_store import CredentialStore

from conftest import CREDENTIAL_ID, PUBLIC_KEY


def test_get_user_by_email_is_case_insensitive(users_file):
    store = CredentialStore(users_file)

    user = store.get_user_by_email("  ALICE@example.com ")

    assert user is not None
    assert user.id == "u-1"
    assert user.roles == ["admin"]
    cred = user.find_credential(CREDENTIAL_ID)
    assert cred.public_key == PUBLIC_KEY
    assert cred.sign_count == 3


def test_unknown_user(users_file):
    store = CredentialStore(users_file)

    assert store.get_user_by_email("carol@example.com") is None
    assert store.get_user_by_email("") is None


def test_missing_file_is_empty(tmp_path):
    store = CredentialStore(tmp_path / "absent.json")

    assert store.get_user_by_email("alice@example.com") is None


def test_update_sign_count_persists(users_file):
    store = CredentialStore(users_file)

    store.update_sign_count(CREDENTIAL_ID, 9)

    saved = json.loads(users_file.read_text(encoding="utf-8"))
    assert saved["users"][0]["webauthn_credentials"][0]["sign_count"] == 9
    assert CredentialStore(users_file).get_user_by_email("alice@example.com").find_credential(CREDENTIAL_ID).sign_count == 9


def test_update_sign_count_rejects_regression(users_file):
    store = CredentialStore(users_file)

    with pytest.raises(ValueError, match="went backwards"):
        store.update_sign_count(CREDENTIAL_ID, 1)


def test_update_sign_count_unknown_credential(users_file):
    store = CredentialStore(users_file)

    with pytest.raises(ValueError, match="Unknown credential"):
        store.update_sign_count("bm9wZQ", 1)
