import logging

from flask import Flask
from config import Config
from .extensions import limiter, compress

def create_app(config_class=Config):
    app = Flask(__name__)

    # Load configuration from the config class
    app.config.from_object(config_class)
    log_level = app.config.get("LOG_LEVEL", "INFO")
    app.logger.setLevel(log_level)
    logging.getLogger("ml").setLevel(log_level)

    # Initialize extensions with this app context
    limiter.init_app(app)
    compress.init_app(app)

    from backend.api.anomaly import anomaly_bp
    app.register_blueprint(anomaly_bp)

    @app.after_request
    def add_cors_headers(response):
        """Allow local static pages (file://) to call the API."""
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # System and Error Routes
    @app.route("/api/health", methods=["GET"])
    def healthcheck():
        return {"status": "ok"}

    @app.errorhandler(413)
    def request_entity_too_large(error):
        return {"error": "File is too large. Maximum size is 16MB"}, 413

    return app
