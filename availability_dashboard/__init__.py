"""Application factory and blueprint registration."""

import importlib
import inspect
import logging
import pkgutil

from flask import Blueprint, Flask, jsonify, redirect

from .config import Config
from .utils.logger import init_logging


def create_app(test_config=None) -> Flask:
    """Create and configure the Flask application."""

    app = Flask(__name__)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)

    # Initialise logging with a fallback so deploys never fail on logging
    try:
        init_logging(app)
    except Exception:  # pragma: no cover - only hit during catastrophic logging failure
        logging.basicConfig(level=logging.INFO)
        app.logger.exception("init_logging failed; using basic logging fallback")

    # Basic routes ---------------------------------------------------------
    @app.get("/")
    def root():
        """Send the bare domain to the current records."""

        return redirect("/api/data/")

    @app.get("/healthz")
    def healthz():
        """Lightweight liveness probe."""

        return "ok", 200

    # Blueprint auto-discovery ---------------------------------------------
    def register_all_blueprints() -> None:
        base_pkg = f"{__name__}.routes"
        pkg = importlib.import_module(base_pkg)

        for modinfo in pkgutil.iter_modules(pkg.__path__):
            name = f"{base_pkg}.{modinfo.name}"
            module = importlib.import_module(name)

            blueprints = [
                obj
                for _, obj in inspect.getmembers(module)
                if isinstance(obj, Blueprint)
            ]
            if not blueprints:
                continue

            url_prefix = getattr(module, "URL_PREFIX", None)
            for bp in blueprints:
                prefix = url_prefix or f"/{modinfo.name}"
                app.register_blueprint(bp, url_prefix=prefix)
                app.logger.info("Registered %s at %s", bp.name, prefix)

    register_all_blueprints()

    # Minimal error handlers -----------------------------------------------
    @app.errorhandler(400)
    def _handle_400(error):
        return jsonify({"success": False, "error": getattr(error, "description", "Bad Request")}), 400

    @app.errorhandler(404)
    def _handle_404(error):
        return jsonify({"success": False, "error": "Not Found"}), 404

    @app.errorhandler(500)
    def _handle_500(error):
        app.logger.exception("500: %s", error)
        return jsonify({"success": False, "error": "Internal Server Error"}), 500

    return app
