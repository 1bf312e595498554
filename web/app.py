"""Flask web app for storefront product ingestion.

Exposes the ingestion core over HTTP: single-product ingest, bulk jobs
with status and cancellation, catalog search and health checks.
"""

import base64
import binascii
import logging
import os
import sys
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv
from flask import Flask, Response, request

# Load environment variables from .env file (explicitly specify path)
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Handle imports for both direct execution and package import
# When run directly (python web/app.py), __package__ is None
# When imported as module (from web.app import app), __package__ is "web"
if __package__ is None or __package__ == "":
    # Running directly - add parent to path for absolute imports
    sys.path.insert(0, str(Path(__file__).parent))
    from config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT
    from api import api
else:
    # Running as package
    from .config import FLASK_DEBUG, FLASK_HOST, FLASK_PORT
    from .api import api

from storefront.logging_config import setup_logging  # noqa: E402

app = Flask(__name__)
app.register_blueprint(api)


# ---------- BASIC AUTH ----------


def _basic_auth_creds() -> Tuple[Optional[str], Optional[str]]:
    """Get credentials from environment."""
    return os.getenv("INGEST_USER"), os.getenv("INGEST_PASS")


def _unauthorized() -> Response:
    return Response(
        "Authentication required",
        401,
        {"WWW-Authenticate": 'Basic realm="Login Required"'},
    )


@app.before_request
def require_basic_auth() -> Optional[Response]:
    """
    Enforce HTTP Basic Auth for all routes.
    Skips enforcement if credentials are not configured (INGEST_USER/INGEST_PASS unset).
    """
    user, password = _basic_auth_creds()
    if not user or not password:
        return None  # auth disabled

    header = request.headers.get("Authorization", "")
    if not header.startswith("Basic "):
        return _unauthorized()

    try:
        decoded = base64.b64decode(header.split(" ", 1)[1]).decode("utf-8")
        username, passwd = decoded.split(":", 1)
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return _unauthorized()

    if username == user and passwd == password:
        return None
    return _unauthorized()


# ---------- FLASK ROUTES ----------


@app.route("/", methods=["GET"])
def index() -> Response:
    """Plain-text route listing."""
    lines = ["Storefront ingester", ""]
    for rule in sorted(app.url_map.iter_rules(), key=lambda r: r.rule):
        if rule.endpoint == "static":
            continue
        methods = ",".join(sorted(rule.methods - {"HEAD", "OPTIONS"}))
        lines.append(f"{methods:6} {rule.rule}")
    return Response("\n".join(lines) + "\n", mimetype="text/plain")


if __name__ == "__main__":
    setup_logging(level=logging.DEBUG if FLASK_DEBUG else logging.INFO)
    app.run(host=FLASK_HOST, port=FLASK_PORT, debug=FLASK_DEBUG)
