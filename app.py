"""
Flask web app for the Entra ID dashboard.

This version is prepared for Azure App Service deployment and includes:
  - Microsoft Entra ID authentication via MSAL, plus optional WebAuthn
    security-key sign-in (see `auth/`)
  - Server-side sessions (filesystem) via Flask-Session
  - JSON API routes that relay dashboard submissions to external APIs
    (see `api/`)
"""

import logging
import os

import requests
from flask import Flask, jsonify, render_template, request, session
from flask_session import Session
from werkzeug.exceptions import HTTPException
from werkzeug.middleware.proxy_fix import ProxyFix

import app_config
from api.config import SEARCH_TERM_LENGTH, get_external_api_settings, init_external_apis
from api.routes import api_bp
from auth.config import init_auth
from auth.decorators import login_required, role_required
from auth.msal_auth import get_access_token
from auth.routes import auth_bp
from storage.credential_store import CredentialStore

__version__ = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def create_app(test_config=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(app_config)
    if test_config:
        app.config.update(test_config)

    configure_logging(app.config.get("LOG_LEVEL", "INFO"))

    # Respect proxy headers (Azure App Service sits behind a reverse proxy).
    # This makes url_for(..., _external=True) generate correct https URLs.
    app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # type: ignore[assignment]

    # Search results are returned in endpoint order.
    app.json.sort_keys = False  # type: ignore[attr-defined]

    # ---- Security / Sessions ----
    # Secrets must NOT be committed. In Azure App Service, set this in Configuration.
    if not app.config.get("SECRET_KEY"):
        raise RuntimeError(
            "Missing FLASK_SECRET_KEY. Set it as an environment variable in Azure App Service "
            "(Configuration) or in your local environment before starting."
        )

    # Tests run with Flask's signed-cookie sessions by setting SESSION_TYPE to None.
    if app.config.get("SESSION_TYPE"):
        if app.config["SESSION_TYPE"] == "filesystem":
            os.makedirs(app.config["SESSION_FILE_DIR"], exist_ok=True)
        Session(app)

    # ---- Authentication ----
    # Initializes MSAL/Entra settings from environment and registers auth routes.
    settings = init_auth(app, app.config.get("AUTH_SETTINGS"))
    if settings.webauthn.enabled and "CREDENTIAL_STORE" not in app.config:
        app.config["CREDENTIAL_STORE"] = CredentialStore(settings.webauthn.users_file)
    app.register_blueprint(auth_bp)

    # ---- External APIs ----
    init_external_apis(app, app.config.get("EXTERNAL_API_SETTINGS"))
    app.register_blueprint(api_bp)

    register_pages(app)
    register_error_handlers(app)

    logger.info("App v%s started (webauthn=%s)", __version__, settings.webauthn.enabled)
    return app


def register_pages(app: Flask) -> None:
    @app.context_processor
    def inject_user():
        """Make the authenticated user available to all templates as `current_user`."""
        return {"current_user": session.get("user"), "app_version": __version__}

    @app.route("/")
    def index():
        return render_template("index.html", title=f"Dashboard v{__version__}")

    @app.route("/dashboard")
    @role_required()
    def dashboard():
        return render_template("dashboard.html", title="Submit Your Data")

    @app.route("/search")
    @login_required
    def search():
        return render_template("search.html", title="Multi Search", term_length=SEARCH_TERM_LENGTH)

    @app.route("/call_api")
    @login_required
    def call_downstream_api():
        settings = get_external_api_settings()
        token = get_access_token()
        if not settings.relay_url:
            api_result = "Did you forget to set the EXTERNAL_API_URL environment variable?"
        elif not token:
            api_result = "No access token is available for this session. Sign in with Microsoft to call the API."
        else:
            try:
                resp = requests.get(
                    settings.relay_url,
                    headers={"Authorization": "Bearer " + token},
                    timeout=settings.relay_timeout,
                )
                resp.raise_for_status()
                api_result = resp.json()
            except (requests.RequestException, ValueError) as exc:
                logger.warning("Downstream API call failed: %s", exc)
                api_result = f"API call failed: {exc}"
        return render_template("display.html", title="API Response", result=api_result)


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(HTTPException)
    def handle_http_error(exc: HTTPException):
        # JSON for API callers, the default HTML page elsewhere.
        if request.path.startswith("/api/") and (exc.code or 500) >= 400:
            return jsonify({"success": False, "message": exc.description}), exc.code
        return exc


if __name__ == "__main__":
    create_app().run(debug=True, port=5050)
