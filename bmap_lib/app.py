# --- bmap_lib/app.py ---
import os
import logging

from flask import Flask, jsonify
from .assets import ASSETS_DIR, TextureRegistry
from .services.config_service import ConfigService

CONFIG_PATH = os.path.join(os.path.expanduser("~"), ".bmap", "bmap.cfg")


def create_app(config_overrides=None):
    """
    Creates and configs an instance of the Flask application.
    """
    app = Flask(__name__)
    log = logging.getLogger("bmap.main")

    # --- Configuration ---
    app.config.from_mapping(
        API_BASE_URL="http://localhost:8080/api",
        ASSETS_PATH=ASSETS_DIR,
        CONFIG_PATH=CONFIG_PATH,
        CACHE_MAX_AGE=604800,
    )

    if config_overrides:
        app.config.from_mapping(config_overrides)
        log.info("Applied runtime configuration overrides.")

    # --- Initialize Services ---
    log.info("Initializing application services...")
    try:
        app.config_service = ConfigService(app.config["CONFIG_PATH"])
        app.render_styles = app.config_service.get_render_styles()
        app.texture_registry = TextureRegistry.load(app.config["ASSETS_PATH"])
        log.info("All services initialized successfully.")
    except Exception as e:
        log.error("Failed to initialize services: %s", e, exc_info=True)
        raise

    # --- Register Blueprints (APIs) ---
    from .api import battlemap_image, env_object

    app.register_blueprint(battlemap_image.bp, url_prefix="/api/battlemap-image")
    app.register_blueprint(env_object.bp, url_prefix="/api/env-object")
    log.info("All API blueprints registered.")

    # --- Global Error Handler ---
    @app.errorhandler(Exception)
    def handle_exception(e):
        """Catches all unhandled exceptions, logs them, and returns JSON."""
        if hasattr(e, "code") and e.code < 500:
            return jsonify(error=str(e)), e.code
        app.logger.exception("An unhandled exception occurred: %s", e)
        return jsonify(error="An internal server error occurred."), 500

    @app.route("/health")
    def health_check():
        return "OK"

    return app
