"""
Route decorators for authentication/authorization.

- `login_required`: user must be authenticated.
- `role_required`: user must be authenticated and hold an app role.
- `api_login_required`: JSON variant of `login_required` for API routes.
- `bearer_or_login_required`: as above, or a caller-supplied bearer token.
"""

from __future__ import annotations

from functools import wraps
from typing import Any, Callable, TypeVar

from flask import flash, jsonify, redirect, request, session, url_for

from .config import get_auth_settings

F = TypeVar("F", bound=Callable[..., object])


def current_user() -> dict[str, Any] | None:
    user = session.get("user")
    return user if isinstance(user, dict) else None


def has_role(user: dict[str, Any] | None, role: str) -> bool:
    if not user:
        return False
    roles = user.get("roles") or []
    return role in roles


def login_required(fn: F) -> F:
    """Ensure the user is logged in; otherwise redirect to sign-in."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
        if current_user():
            return fn(*args, **kwargs)
        return redirect(url_for("auth.signin", next=request.url))

    return wrapper  # type: ignore[return-value]


def role_required(role: str | None = None) -> Callable[[F], F]:
    """
    Ensure the user is logged in and holds `role` (default: the configured
    admin role).

    Signed-in users without the role are sent back to the home page.
    """

    def decorator(fn: F) -> F:
        @wraps(fn)
        def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
            user = current_user()
            if not user:
                return redirect(url_for("auth.signin", next=request.url))
            required = role or get_auth_settings().admin_role
            if has_role(user, required):
                return fn(*args, **kwargs)
            flash(f"The '{required}' role is required to open that page.", "error")
            return redirect(url_for("index"))

        return wrapper  # type: ignore[return-value]

    return decorator


def api_login_required(fn: F) -> F:
    """Reject anonymous API calls with a JSON 401 instead of a redirect."""

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
        if current_user():
            return fn(*args, **kwargs)
        return jsonify({"success": False, "message": "Authentication required"}), 401

    return wrapper  # type: ignore[return-value]


def bearer_or_login_required(fn: F) -> F:
    """
    Let API calls through with either a signed-in session or their own
    bearer token (forwarded as is by the relay).
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):  # type: ignore[no-untyped-def]
        authorization = request.headers.get("Authorization", "")
        if current_user() or authorization.lower().startswith("bearer "):
            return fn(*args, **kwargs)
        return jsonify({"success": False, "message": "Authentication required"}), 401

    return wrapper  # type: ignore[return-value]
