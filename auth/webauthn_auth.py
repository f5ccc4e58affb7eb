"""
WebAuthn (FIDO2 security key) sign-in.

The browser first asks for an authentication challenge, signs it with a
registered key, and posts the assertion back. Verification is delegated to
py_webauthn; this module only looks up the user's registered credential and
keeps its signature counter current.
"""

from __future__ import annotations

import logging
from typing import Any

from webauthn import generate_authentication_options, verify_authentication_response
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url, options_to_json
from webauthn.helpers.structs import PublicKeyCredentialDescriptor, UserVerificationRequirement

from storage.credential_store import CredentialStore

from .config import WebAuthnSettings

logger = logging.getLogger(__name__)


def begin_authentication(
    settings: WebAuthnSettings, store: CredentialStore, email: str
) -> tuple[str, str]:
    """
    Build authentication options for `email`.

    Returns the options as JSON (for the browser) and the base64url challenge
    to keep in the session. Unknown users get options without any allowed
    credentials so the response does not reveal who is registered.
    """

    user = store.get_user_by_email(email)
    allow = []
    if user:
        allow = [
            PublicKeyCredentialDescriptor(id=base64url_to_bytes(c.credential_id))
            for c in user.webauthn_credentials
        ]

    options = generate_authentication_options(
        rp_id=settings.rp_id,
        allow_credentials=allow,
        user_verification=UserVerificationRequirement.PREFERRED,
    )
    return options_to_json(options), bytes_to_base64url(options.challenge)


def verify_assertion(
    settings: WebAuthnSettings,
    store: CredentialStore,
    email: str | None,
    credential: dict[str, Any] | None,
    expected_challenge: str | None,
) -> dict[str, Any] | None:
    """
    Verify a signed assertion and return the session user, or None.

    Every failure (missing input, unknown user or key, bad signature) yields
    None so callers can answer with a single generic message.
    """

    try:
        credential_id = (credential or {}).get("id")
        if not email or not credential_id or not expected_challenge:
            return None

        user = store.get_user_by_email(email)
        if not user or not user.webauthn_credentials:
            return None

        stored = user.find_credential(credential_id)
        if stored is None:
            return None

        verification = verify_authentication_response(
            credential=credential,
            expected_challenge=base64url_to_bytes(expected_challenge),
            expected_rp_id=settings.rp_id,
            expected_origin=settings.origin,
            credential_public_key=base64url_to_bytes(stored.public_key),
            credential_current_sign_count=stored.sign_count,
        )

        store.update_sign_count(stored.credential_id, verification.new_sign_count)

        return {
            "id": user.id,
            "name": user.name or user.email,
            "email": user.email,
            "image": None,
            "roles": list(user.roles),
        }
    except Exception:
        logger.exception("WebAuthn authentication error")
        return None
