"""
MSAL helpers.

This wraps MSAL (Microsoft Authentication Library) setup for Entra ID
authentication. We use the OAuth2 Authorization Code Flow and keep the MSAL
token cache in the server-side session so access tokens can be refreshed
silently on later requests.
"""

from __future__ import annotations

import logging
import secrets
from typing import Any

import msal
from flask import Flask, session

from .config import get_auth_settings

logger = logging.getLogger(__name__)

TOKEN_CACHE_KEY = "token_cache"


def load_token_cache() -> msal.SerializableTokenCache:
    cache = msal.SerializableTokenCache()
    serialized = session.get(TOKEN_CACHE_KEY)
    if serialized:
        cache.deserialize(serialized)
    return cache


def save_token_cache(cache: msal.SerializableTokenCache) -> None:
    if cache.has_state_changed:
        session[TOKEN_CACHE_KEY] = cache.serialize()


def build_msal_app(
    app: Flask | None = None,
    cache: msal.SerializableTokenCache | None = None,
) -> msal.ConfidentialClientApplication:
    """Create an MSAL confidential client app."""

    s = get_auth_settings(app)
    return msal.ConfidentialClientApplication(
        client_id=s.client_id,
        client_credential=s.client_secret,
        authority=s.authority,
        token_cache=cache,
    )


def new_state_token() -> str:
    """Generate a cryptographically secure state token for CSRF protection."""

    return secrets.token_urlsafe(32)


def get_email_from_claims(claims: dict[str, Any] | None) -> str | None:
    """
    Extract an email/UPN-like identifier from ID token claims.

    Entra ID commonly uses:
      - preferred_username (often UPN/email)
      - email
      - upn
    """

    if not claims:
        return None
    for key in ("preferred_username", "email", "upn"):
        val = claims.get(key)
        if isinstance(val, str) and val.strip():
            return val.strip()
    return None


def get_roles_from_claims(claims: dict[str, Any] | None) -> list[str]:
    """
    App roles assigned to the user.

    Entra emits app role assignments as a `roles` list; a single `role` claim
    is also honoured.
    """

    if not claims:
        return []
    roles: list[str] = []
    raw = claims.get("roles")
    if isinstance(raw, list):
        roles.extend(r for r in raw if isinstance(r, str) and r)
    single = claims.get("role")
    if isinstance(single, str) and single and single not in roles:
        roles.append(single)
    return roles


def build_session_user(claims: dict[str, Any]) -> dict[str, Any]:
    """Map ID token claims to the user record kept in the session."""

    email = get_email_from_claims(claims)
    return {
        "id": claims.get("oid") or claims.get("sub"),
        "name": claims.get("name") or email,
        "email": email,
        "image": claims.get("picture"),
        "roles": get_roles_from_claims(claims),
    }


def get_access_token(scopes: list[str] | None = None) -> str | None:
    """
    Return a valid access token for the signed-in user, refreshing it through
    the session token cache when needed. None when no account is cached or the
    refresh fails.
    """

    tokens = session.get("tokens") or {}
    if not session.get(TOKEN_CACHE_KEY):
        return tokens.get("access_token")

    s = get_auth_settings()
    cache = load_token_cache()
    msal_app = build_msal_app(cache=cache)

    accounts = msal_app.get_accounts()
    if not accounts:
        return tokens.get("access_token")

    result = msal_app.acquire_token_silent(scopes or s.scopes, account=accounts[0])
    save_token_cache(cache)

    if not result or "access_token" not in result:
        logger.warning("Silent token acquisition failed: %s", (result or {}).get("error"))
        return None

    session["tokens"] = {
        "access_token": result["access_token"],
        "id_token": result.get("id_token") or tokens.get("id_token"),
    }
    return result["access_token"]
