"""Flask application entrypoint for the profile analyzer."""

from __future__ import annotations

import os
from typing import Any, Mapping, Optional

from flask import Flask, jsonify
from werkzeug.exceptions import RequestEntityTooLarge

from profile_analyzer import __version__
from profile_analyzer.ai.commentary import is_ai_enabled
from profile_analyzer.config import Settings, settings
from profile_analyzer.runtime.session import SessionStore
from profile_analyzer.utils.logging_utils import get_logger
from profile_analyzer.web import profile_blueprint

LOGGER = get_logger("app")


def create_app(config: Optional[Mapping[str, Any]] = None) -> Flask:
    app = Flask(__name__)
    app.config.setdefault("PROFILE_ANALYZER_SETTINGS", settings)
    if config:
        app.config.update(config)

    cfg: Settings = app.config["PROFILE_ANALYZER_SETTINGS"]
    app.config.setdefault("MAX_CONTENT_LENGTH", cfg.max_upload_bytes)
    secret = app.config.get("SECRET_KEY") or os.environ.get("PROFILE_ANALYZER_SECRET_KEY") or "dev-secret"
    app.config["SECRET_KEY"] = secret
    app.secret_key = secret

    app.profile_session = SessionStore()
    app.register_blueprint(profile_blueprint)

    @app.errorhandler(RequestEntityTooLarge)
    def upload_too_large(exc: RequestEntityTooLarge):
        limit_mb = (app.config.get("MAX_CONTENT_LENGTH") or 0) / (1024 * 1024)
        LOGGER.warning("Rejected upload larger than %.1f MiB", limit_mb)
        return jsonify({"error": "Upload too large", "cause": f"The limit is {limit_mb:.1f} MiB."}), 413

    @app.route("/")
    def index():
        return jsonify(
            {
                "name": "profile-analyzer",
                "version": __version__,
                "ai_enabled": is_ai_enabled(cfg),
                "session": app.profile_session.status(),
            }
        )

    return app


if __name__ == "__main__":
    app = create_app()
    print(f"Serving profile analyzer {__version__} (AI commentary: {'on' if is_ai_enabled() else 'off'})")
    app.run(debug=True)
