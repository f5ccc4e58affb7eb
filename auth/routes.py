"""
Auth routes (MSAL / Entra ID, WebAuthn).

Endpoints:
  - GET  /auth/signin
  - GET  /auth/login
  - GET  /auth/callback
  - GET  /auth/logout
  - POST /auth/webauthn/options
  - POST /auth/webauthn/verify

Implementation notes:
  - Uses MSAL Authorization Code Flow.
  - Stores the user profile, roles and token pair in the server-side session.
  - Signed-in users are sent home instead of seeing the sign-in pages again.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlencode, urlsplit

from flask import Blueprint, current_app, jsonify, redirect, render_template, request, session, url_for

from storage.credential_store import CredentialStore

from .config import get_auth_settings
from .decorators import current_user
from .msal_auth import TOKEN_CACHE_KEY, build_msal_app, build_session_user, get_email_from_claims, load_token_cache, new_state_token, save_token_cache
from .webauthn_auth import begin_authentication, verify_assertion

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# Pages a signed-in user has no reason to visit.
_SIGNED_OUT_ONLY = {"auth.signin", "auth.login"}

# Keys the Entra callback writes just before the session is rebuilt.
_ENTRA_SESSION_KEYS = ("tokens", TOKEN_CACHE_KEY)


def _credential_store() -> CredentialStore | None:
    store = current_app.config.get("CREDENTIAL_STORE")
    return store if isinstance(store, CredentialStore) else None


def _safe_next(target: Any) -> str:
    """Only follow local redirects."""
    if not isinstance(target, str) or not target:
        return url_for("index")
    if "\\" in target:
        return url_for("index")
    parts = urlsplit(target)
    if not parts.scheme and not parts.netloc and target.startswith("/"):
        return target
    if target.startswith(request.host_url):
        return target
    return url_for("index")


def _start_session(user: dict[str, Any], provider: str, keep: tuple[str, ...] = ()) -> None:
    # Pre-login state is dropped and the session id rotated; only `keep` carries over.
    kept = {k: session[k] for k in keep if k in session}
    session.clear()
    session.update(kept)
    session["user"] = user
    # Server-side sessions get a fresh id.
    regenerate = getattr(current_app.session_interface, "regenerate", None)
    if regenerate is not None:
        regenerate(session._get_current_object())
    logger.info("User signed in: %s (provider=%s)", user.get("email"), provider)


@auth_bp.before_request
def redirect_signed_in_users():
    if request.endpoint in _SIGNED_OUT_ONLY and current_user():
        return redirect(url_for("index"))
    return None


@auth_bp.get("/signin")
def signin():
    """Sign-in page offering Entra ID and, when configured, a security key."""

    s = get_auth_settings()
    return render_template(
        "signin.html",
        next_url=request.args.get("next") or "",
        webauthn_enabled=s.webauthn.enabled,
    )


@auth_bp.get("/login")
def login():
    """
    Start the login flow by redirecting the user to Microsoft.

    Optional query param:
      - next: where to redirect after successful login
    """

    s = get_auth_settings()
    msal_app = build_msal_app()

    state = new_state_token()
    session["auth_state"] = state
    session["post_login_redirect"] = _safe_next(request.args.get("next"))

    redirect_uri = url_for("auth.callback", _external=True)
    auth_url = msal_app.get_authorization_request_url(
        scopes=s.scopes,
        state=state,
        redirect_uri=redirect_uri,
        prompt="select_account",
    )
    return redirect(auth_url)


@auth_bp.get("/callback")
def callback():
    """Handle the OAuth2 redirect from Microsoft and create a local session."""

    # CSRF check
    expected_state = session.get("auth_state")
    received_state = request.args.get("state")
    if not expected_state or expected_state != received_state:
        session.clear()
        return "Authentication failed (invalid state). Please try again.", 400

    code = request.args.get("code")
    if not code:
        # Azure sends error params when login fails/cancelled.
        error = request.args.get("error")
        desc = request.args.get("error_description")
        session.clear()
        return f"Authentication failed: {error or 'unknown_error'}\n\n{desc or ''}", 400

    s = get_auth_settings()
    cache = load_token_cache()
    msal_app = build_msal_app(cache=cache)
    redirect_uri = url_for("auth.callback", _external=True)

    result = msal_app.acquire_token_by_authorization_code(
        code=code,
        scopes=s.scopes,
        redirect_uri=redirect_uri,
    )

    if not isinstance(result, dict) or "error" in result:
        result = result if isinstance(result, dict) else {}
        session.clear()
        return f"Authentication failed: {result.get('error')} - {result.get('error_description')}", 400

    claims = result.get("id_token_claims") or {}
    if not get_email_from_claims(claims):
        session.clear()
        return "Authentication failed: no email claim returned by identity provider.", 400

    save_token_cache(cache)
    session["tokens"] = {
        "access_token": result.get("access_token"),
        "id_token": result.get("id_token"),
    }
    next_url = session.get("post_login_redirect") or url_for("index")
    _start_session(build_session_user(claims), "entra", keep=_ENTRA_SESSION_KEYS)
    return redirect(next_url)


@auth_bp.get("/logout")
def logout():
    """
    Clear the local session and redirect to Microsoft logout.

    This ensures users are fully signed out from Entra ID when desired.
    """

    s = get_auth_settings()
    user = current_user()
    session.clear()
    if user:
        logger.info("User signed out: %s", user.get("email"))

    post_logout_redirect = url_for("index", _external=True)
    logout_url = f"{s.authority}/oauth2/v2.0/logout?{urlencode({'post_logout_redirect_uri': post_logout_redirect})}"
    return redirect(logout_url)


@auth_bp.post("/webauthn/options")
def webauthn_options():
    """Issue an authentication challenge for the email in the JSON body."""

    s = get_auth_settings()
    store = _credential_store()
    if not s.webauthn.enabled or store is None:
        return jsonify({"success": False, "message": "Security key sign-in is not enabled"}), 404

    body = request.get_json(silent=True) or {}
    email = body.get("email")
    if not isinstance(email, str) or not email.strip():
        return jsonify({"success": False, "message": "Email is required"}), 400

    options_json, challenge = begin_authentication(s.webauthn, store, email)
    session["webauthn_challenge"] = challenge
    session["webauthn_email"] = email.strip()
    return current_app.response_class(options_json, mimetype="application/json")


@auth_bp.post("/webauthn/verify")
def webauthn_verify():
    """Verify a signed assertion and start a session."""

    s = get_auth_settings()
    store = _credential_store()
    if not s.webauthn.enabled or store is None:
        return jsonify({"success": False, "message": "Security key sign-in is not enabled"}), 404

    body = request.get_json(silent=True) or {}
    # A challenge is single use.
    challenge = session.pop("webauthn_challenge", None)
    email = session.pop("webauthn_email", None)

    credential = body.get("credential")
    user = verify_assertion(
        s.webauthn,
        store,
        email,
        credential if isinstance(credential, dict) else None,
        challenge,
    )
    if user is None:
        return jsonify({"success": False, "message": "Authentication failed"}), 401

    _start_session(user, "webauthn")
    return jsonify({"success": True, "redirect": _safe_next(body.get("next"))})
