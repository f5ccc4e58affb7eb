"""Shared fixtures: a configured app, a test client and signed-in sessions."""

import json

import pytest

from api.config import ExternalApiSettings
from app import create_app
from auth.config import AuthSettings, WebAuthnSettings

# base64url of b"cred-1" and b"public-key"
CREDENTIAL_ID = "Y3JlZC0x"
PUBLIC_KEY = "cHVibGljLWtleQ"

SEARCH_ENDPOINTS = {
    "API One": "https://search.test/v1",
    "API Two": "https://search.test/v2",
    "API Three": "https://search.test/v3",
    "API Four": "https://search.test/v4",
}


@pytest.fixture
def users_file(tmp_path):
    path = tmp_path / "users.json"
    path.write_text(
        json.dumps(
            {
                "users": [
                    {
                        "id": "u-1",
                        "email": "alice@example.com",
                        "name": "Alice",
                        "roles": ["admin"],
                        "webauthn_credentials": [
                            {"credential_id": CREDENTIAL_ID, "public_key": PUBLIC_KEY, "sign_count": 3}
                        ],
                    },
                    {
                        "id": "u-2",
                        "email": "bob@example.com",
                        "name": "Bob",
                        "roles": [],
                        "webauthn_credentials": [],
                    },
                ]
            }
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def auth_settings(users_file):
    return AuthSettings(
        tenant_id="tenant-123",
        client_id="client-abc",
        client_secret="s3cret",
        scopes=["User.Read"],
        webauthn=WebAuthnSettings(
            rp_id="localhost",
            rp_name="Dashboard",
            origin="http://localhost",
            users_file=str(users_file),
        ),
    )


@pytest.fixture
def api_settings():
    return ExternalApiSettings(
        relay_url="https://relay.test/api",
        relay_timeout=10.0,
        search_endpoints=dict(SEARCH_ENDPOINTS),
        search_timeout=5.0,
    )


@pytest.fixture
def app(auth_settings, api_settings):
    return create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "test-secret",
            "SESSION_TYPE": None,
            "SESSION_COOKIE_SECURE": False,
            "AUTH_SETTINGS": auth_settings,
            "EXTERNAL_API_SETTINGS": api_settings,
        }
    )


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def sign_in(client):
    """Put a user into the session; returns the stored user record."""

    def _sign_in(roles=None, tokens=None, **overrides):
        user = {
            "id": "oid-1",
            "name": "Alice",
            "email": "alice@example.com",
            "image": None,
            "roles": list(roles or []),
        }
        user.update(overrides)
        with client.session_transaction() as sess:
            sess["user"] = user
            if tokens:
                sess["tokens"] = tokens
        return user

    return _sign_in
