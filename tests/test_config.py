"""Tests for configuration loading."""

import pytest

from api.config import DEFAULT_SEARCH_ENDPOINTS, ExternalApiSettings
from app import create_app
from auth.config import load_auth_settings, parse_scopes


@pytest.fixture
def aad_env(monkeypatch):
    monkeypatch.setenv("AAD_TENANT_ID", "tenant-123")
    monkeypatch.setenv("AAD_CLIENT_ID", "client-abc")
    monkeypatch.setenv("AAD_CLIENT_SECRET", "s3cret")
    for name in ("AAD_SCOPES", "AAD_ADMIN_ROLE", "WEBAUTHN_RP_ID", "WEBAUTHN_ORIGIN", "WEBAUTHN_USERS_FILE"):
        monkeypatch.delenv(name, raising=False)


def test_auth_settings_load_from_env(aad_env):
    """Required Entra settings and defaults should be read from the environment."""
    settings = load_auth_settings()

    assert settings.tenant_id == "tenant-123"
    assert settings.client_id == "client-abc"
    assert settings.scopes == ["User.Read"]
    assert settings.admin_role == "admin"
    assert settings.authority == "https://login.microsoftonline.com/tenant-123"
    assert settings.webauthn.enabled is False


def test_auth_settings_require_entra_variables(monkeypatch):
    """Missing Entra variables are all named in the error."""
    monkeypatch.delenv("AAD_TENANT_ID", raising=False)
    monkeypatch.delenv("AAD_CLIENT_SECRET", raising=False)
    monkeypatch.setenv("AAD_CLIENT_ID", "client-abc")

    with pytest.raises(RuntimeError) as exc_info:
        load_auth_settings()

    assert "AAD_TENANT_ID" in str(exc_info.value)
    assert "AAD_CLIENT_SECRET" in str(exc_info.value)
    assert "AAD_CLIENT_ID" not in str(exc_info.value)


def test_auth_settings_webauthn_enabled_by_users_file(aad_env, monkeypatch, tmp_path):
    monkeypatch.setenv("WEBAUTHN_USERS_FILE", str(tmp_path / "users.json"))
    monkeypatch.setenv("WEBAUTHN_RP_ID", "dashboard.example.com")

    settings = load_auth_settings()

    assert settings.webauthn.enabled is True
    assert settings.webauthn.rp_id == "dashboard.example.com"


def test_parse_scopes_drops_reserved_scopes():
    """MSAL rejects openid/profile/offline_access, so they are filtered out."""
    assert parse_scopes("openid profile email offline_access User.Read") == ["email", "User.Read"]
    assert parse_scopes("") == []


def test_external_api_settings_defaults(monkeypatch):
    for i in range(1, 5):
        monkeypatch.delenv(f"SEARCH_ENDPOINT_{i}", raising=False)
    monkeypatch.delenv("EXTERNAL_API_URL", raising=False)
    monkeypatch.delenv("SEARCH_TIMEOUT", raising=False)
    monkeypatch.delenv("EXTERNAL_API_TIMEOUT", raising=False)

    settings = ExternalApiSettings.from_env()

    assert settings.relay_url is None
    assert settings.search_endpoints == DEFAULT_SEARCH_ENDPOINTS
    assert list(settings.search_endpoints) == ["API One", "API Two", "API Three", "API Four"]
    assert settings.search_timeout == 5.0
    assert settings.relay_timeout == 30.0


def test_external_api_settings_overrides(monkeypatch):
    monkeypatch.setenv("EXTERNAL_API_URL", "https://relay.example.com/ingest")
    monkeypatch.setenv("SEARCH_ENDPOINT_2", "https://other.example.com/search")
    monkeypatch.setenv("SEARCH_TIMEOUT", "2.5")

    settings = ExternalApiSettings.from_env()

    assert settings.relay_url == "https://relay.example.com/ingest"
    assert settings.search_endpoints["API Two"] == "https://other.example.com/search"
    assert settings.search_timeout == 2.5


@pytest.mark.parametrize("value", ["soon", "0", "-1"])
def test_external_api_settings_reject_bad_timeout(monkeypatch, value):
    monkeypatch.setenv("SEARCH_TIMEOUT", value)

    with pytest.raises(RuntimeError, match="SEARCH_TIMEOUT"):
        ExternalApiSettings.from_env()


def test_create_app_requires_secret_key(auth_settings, api_settings):
    with pytest.raises(RuntimeError, match="FLASK_SECRET_KEY"):
        create_app(
            {
                "SECRET_KEY": "",
                "SESSION_TYPE": None,
                "AUTH_SETTINGS": auth_settings,
                "EXTERNAL_API_SETTINGS": api_settings,
            }
        )


def test_create_app_builds_credential_store(app, users_file):
    """A configured users file enables security-key sign-in."""
    store = app.config["CREDENTIAL_STORE"]

    assert store.path == users_file
