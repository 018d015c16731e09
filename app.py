#!/usr/bin/env python3
"""
Fury Fence: Application Entry Point
Creates the Flask app and registers the site Blueprint.
"""

import os
import logging
from flask import Flask

from furyfence.core import paths


def create_app(config=None):
    """Application factory.

    ``config`` overrides app.config (DATA_DIR, SITE_DIR, NOTIFY_ASYNC, TESTING).
    """
    app = Flask(__name__, static_folder=None)
    app.config.update(
        DATA_DIR=paths.DATA_DIR,
        SITE_DIR=paths.SITE_DIR,
        NOTIFY_ASYNC=True,
        TESTING=os.environ.get("FURYFENCE_TESTING", "").lower() == "true",
    )
    app.config.update(config or {})
    app.json.sort_keys = False

    if not app.config.get("TESTING"):
        from logging_config import setup_logging
        setup_logging(log_dir=os.path.join(app.config["DATA_DIR"], "logs"))

    from furyfence.api.routes import bp
    app.register_blueprint(bp)

    # ── Security middleware (rate limiting, headers) ─────────────────────────
    from furyfence.core.security import init_security
    init_security(app)

    # ── Runtime self-test: catches path/data/config problems at boot ─────────
    from furyfence.core.startup_checks import run_startup_checks
    checks = run_startup_checks(app)
    if checks["failed"] > 0:
        logging.getLogger("furyfence").error(
            "STARTUP: %d checks FAILED, review logs", checks["failed"])

    return app


# For WSGI servers: <server> app:app
app = create_app()

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 3000))
    host = os.environ.get("HOST", "0.0.0.0")
    logging.getLogger("furyfence").info("Fury Fence backend running on port %d", port)
    app.run(host=host, port=port, debug=False)
