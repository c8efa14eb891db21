#!/usr/bin/env python3
"""
Fasercon Quote Service — Application Entry Point
Creates Flask app and registers the quote PDF Blueprint.
"""

import os
import time
import logging
from flask import Flask, request

log = logging.getLogger("quotedoc")


def create_app():
    """Application factory."""
    app = Flask(__name__)
    app.secret_key = os.environ.get("SECRET_KEY", "quotedoc-dev")

    # ── Asset/path check: missing fonts or logo only degrade the PDF ────────
    from quotedoc.core.paths import validate_paths
    checks = validate_paths()
    for warning in checks["warnings"]:
        log.warning("STARTUP: %s", warning)
    for error in checks["errors"]:
        log.error("STARTUP: %s", error)

    from quotedoc.api.routes_quotes import bp
    app.register_blueprint(bp)

    # ── Request-level structured logging ────────────────────────────────────
    @app.before_request
    def _log_request_start():
        request._start_time = time.time()

    @app.after_request
    def _log_request_end(response):
        if hasattr(request, "_start_time"):
            duration_ms = round((time.time() - request._start_time) * 1000, 1)
            if request.path != "/api/health":
                log.info("%s %s → %d (%.0fms)",
                         request.method, request.path, response.status_code, duration_ms,
                         extra={"route": request.path, "method": request.method,
                                "status": response.status_code, "duration_ms": duration_ms})
        return response

    return app


# For gunicorn: gunicorn app:app
app = create_app()

if __name__ == "__main__":
    from logging_config import setup_logging
    setup_logging()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port, debug=False)
