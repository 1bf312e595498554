"""Centralized configuration for the storefront web app."""

import os

# Flask app settings (allow env overrides; default debug off for safety)
# Render sets PORT dynamically; fall back to FLASK_PORT or 5000 for local.
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# Longest a request handler waits on the ingestion loop (seconds)
WEB_CALL_TIMEOUT = float(os.getenv("WEB_CALL_TIMEOUT", "120"))

# Upper bound for ?limit= on /search
MAX_SEARCH_LIMIT = int(os.getenv("MAX_SEARCH_LIMIT", "25"))
