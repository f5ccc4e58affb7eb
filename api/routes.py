"""
API routes.

All routes take and return JSON and require a signed-in session;
`/api/final` also accepts callers that bring their own bearer token.
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from auth.decorators import api_login_required, bearer_or_login_required
from auth.msal_auth import get_access_token

from .config import SEARCH_TERM_LENGTH, get_external_api_settings
from .fanout import fan_out_search
from .forms import validate_search_term, validate_submission
from .relay import RelayError, relay_json

logger = logging.getLogger(__name__)

api_bp = Blueprint("api", __name__, url_prefix="/api")


@api_bp.post("/submit")
@api_login_required
def submit():
    """Validate a dashboard form submission and echo it back."""

    body = request.get_json(silent=True)
    if body is None:
        return jsonify({"success": False, "message": "Invalid data"}), 400

    cleaned, errors = validate_submission(body)
    if errors:
        message = "; ".join(errors.values())
        return jsonify({"success": False, "message": message, "errors": errors}), 400

    return jsonify({"success": True, "data": cleaned, "message": "Data received successfully"})


@api_bp.post("/final")
@bearer_or_login_required
def final():
    """
    Relay the JSON body to EXTERNAL_API_URL.

    The incoming Authorization header is forwarded as is; without one, the
    signed-in user's access token is used when available.
    """

    try:
        body = request.get_json(silent=True)
        if body is None:
            raise RelayError("Request body must be valid JSON.")

        settings = get_external_api_settings()
        authorization = request.headers.get("Authorization")
        if not authorization:
            token = get_access_token()
            if token:
                authorization = f"Bearer {token}"

        payload, status = relay_json(settings.relay_url, body, authorization, settings.relay_timeout)
        return jsonify(payload), status
    except RelayError as exc:
        logger.error("Error in relay route: %s", exc)
        return jsonify({"success": False, "message": str(exc) or "Internal server error"}), 500


@api_bp.post("/multi-search")
@api_login_required
def multi_search():
    """Send an 11 character search term to every search endpoint at once."""

    body = request.get_json(silent=True)
    term = validate_search_term(body)
    if term is None:
        return (
            jsonify(
                {
                    "success": False,
                    "message": f"Search term must be exactly {SEARCH_TERM_LENGTH} characters",
                }
            ),
            400,
        )

    try:
        settings = get_external_api_settings()
        results = fan_out_search(settings.search_endpoints, term, settings.search_timeout)
    except Exception:
        logger.exception("Error processing search request")
        return jsonify({"success": False, "message": "Failed to process request"}), 500

    return jsonify(results)
