"""
Authentication configuration.

All secrets are sourced from environment variables (recommended for Azure App
Service). This module validates presence of required settings and exposes a
single `init_auth(app)` entrypoint.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from flask import Flask, current_app

# MSAL adds these itself and refuses requests that list them explicitly.
RESERVED_SCOPES = frozenset({"openid", "profile", "offline_access"})


@dataclass(frozen=True)
class WebAuthnSettings:
    """Relying-party configuration for security-key sign-in."""

    rp_id: str = "localhost"
    rp_name: str = "Dashboard"
    origin: str = "http://localhost:5050"
    users_file: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.users_file)


@dataclass(frozen=True)
class AuthSettings:
    """Configuration needed for Entra ID / MSAL auth."""

    tenant_id: str
    client_id: str
    client_secret: str
    scopes: list[str]
    admin_role: str = "admin"
    webauthn: WebAuthnSettings = field(default_factory=WebAuthnSettings)

    @property
    def authority(self) -> str:
        return f"https://login.microsoftonline.com/{self.tenant_id}"


def parse_scopes(raw: str) -> list[str]:
    """Split a space separated scope string, dropping OIDC reserved scopes."""

    return [s for s in raw.split() if s and s not in RESERVED_SCOPES]


def load_webauthn_settings() -> WebAuthnSettings:
    defaults = WebAuthnSettings()
    return WebAuthnSettings(
        rp_id=os.environ.get("WEBAUTHN_RP_ID", "").strip() or defaults.rp_id,
        rp_name=os.environ.get("WEBAUTHN_RP_NAME", "").strip() or defaults.rp_name,
        origin=os.environ.get("WEBAUTHN_ORIGIN", "").strip() or defaults.origin,
        users_file=os.environ.get("WEBAUTHN_USERS_FILE", "").strip(),
    )


def load_auth_settings() -> AuthSettings:
    """
    Load auth settings from environment variables.

    Required:
      - AAD_TENANT_ID
      - AAD_CLIENT_ID
      - AAD_CLIENT_SECRET

    Optional:
      - AAD_SCOPES (default: 'User.Read')
      - AAD_ADMIN_ROLE (default: admin)
      - WEBAUTHN_RP_ID / WEBAUTHN_RP_NAME / WEBAUTHN_ORIGIN / WEBAUTHN_USERS_FILE
    """

    tenant_id = os.environ.get("AAD_TENANT_ID", "").strip()
    client_id = os.environ.get("AAD_CLIENT_ID", "").strip()
    client_secret = os.environ.get("AAD_CLIENT_SECRET", "").strip()

    missing = [k for k, v in [("AAD_TENANT_ID", tenant_id), ("AAD_CLIENT_ID", client_id), ("AAD_CLIENT_SECRET", client_secret)] if not v]
    if missing:
        raise RuntimeError(
            "Missing required auth environment variables: "
            + ", ".join(missing)
            + ". Set them in Azure App Service Configuration (or your local env) before starting the app."
        )

    scopes = parse_scopes(os.environ.get("AAD_SCOPES", "User.Read").strip())
    admin_role = os.environ.get("AAD_ADMIN_ROLE", "admin").strip() or "admin"

    return AuthSettings(
        tenant_id=tenant_id,
        client_id=client_id,
        client_secret=client_secret,
        scopes=scopes,
        admin_role=admin_role,
        webauthn=load_webauthn_settings(),
    )


def init_auth(app: Flask, settings: AuthSettings | None = None) -> AuthSettings:
    """
    Validate and attach auth settings to Flask `app.config`.

    Returns the parsed `AuthSettings` for convenience.
    """

    settings = settings or load_auth_settings()
    app.config["AUTH_SETTINGS"] = settings
    return settings


def get_auth_settings(app: Flask | None = None) -> AuthSettings:
    app = app or current_app  # type: ignore[assignment]
    settings = app.config.get("AUTH_SETTINGS")
    if not isinstance(settings, AuthSettings):
        raise RuntimeError("Auth settings not initialized. Call auth.config.init_auth(app) during app startup.")
    return settings
