"""
Flask configuration defaults.

Loaded with `app.config.from_object(app_config)`; values that depend on the
deployment are read from the environment (or a local `.env`).
"""

import os

from dotenv import load_dotenv

load_dotenv()

SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "")

# Server-side sessions (filesystem). Simple and adequate for a single-instance Web App.
SESSION_TYPE = "filesystem"
SESSION_PERMANENT = False
SESSION_FILE_DIR = os.environ.get("FLASK_SESSION_DIR") or os.path.join(os.getcwd(), ".flask_session")

SESSION_COOKIE_HTTPONLY = True
SESSION_COOKIE_SAMESITE = "Lax"
SESSION_COOKIE_SECURE = os.environ.get("FLASK_COOKIE_SECURE", "true").lower() == "true"

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
