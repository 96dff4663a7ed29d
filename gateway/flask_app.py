"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import logging
from typing import Optional

from flask import Flask, request

from gateway.config import GatewayConfig, load_settings
from gateway.core.accounts_service import GatewayServices, build_services

CORS_ALLOWED_METHODS = "GET, POST, OPTIONS"
CORS_ALLOWED_HEADERS = "Content-Type, Authorization, X-Session-Id"


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[GatewayConfig] = None, services: Optional[GatewayServices] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Settings to use instead of loading them from the environment
        services: Pre-built services (tests inject fakes here)
    """
    cfg = cfg or load_settings()
    _configure_logging(cfg)

    app = Flask(__name__)

    # Store config and services for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["GATEWAY_SERVICES"] = services or build_services(cfg)
    app.config["DEMO_MODE"] = cfg.demo_mode

    # Register blueprints
    from gateway.api import accounts, academic_years, errors, health

    app.register_blueprint(health.bp)
    app.register_blueprint(accounts.bp)
    app.register_blueprint(academic_years.bp)

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/after_request handlers
    _register_cors(app, cfg)

    # Log startup info
    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    print(f"[flask_app] Mode={mode_label}")
    print(f"[flask_app] Account API registered at /api (CRM {cfg.api_base_url})")

    if cfg.demo_mode:
        print("[flask_app] WARNING: Demo mode active - do not deploy with demo credentials")

    return app


def _configure_logging(cfg: GatewayConfig) -> None:
    """Apply LOG_LEVEL to the root logger (gunicorn may already have handlers)."""
    level = getattr(logging, cfg.log_level, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format="%(asctime)s %(levelname)s [%(name)s] %(message)s")
    root.setLevel(level)


def _register_cors(app: Flask, cfg: GatewayConfig):
    """Answer preflights and add CORS headers for browser registration forms."""
    allowed_origins = [origin.strip() for origin in cfg.cors_allowed_origins.split(",") if origin.strip()]

    def _allowed_origin() -> Optional[str]:
        if "*" in allowed_origins:
            return "*"
        origin = request.headers.get("Origin", "")
        return origin if origin in allowed_origins else None

    @app.before_request
    def answer_preflight():
        """Short-circuit CORS preflight requests."""
        if request.method == "OPTIONS":
            return app.make_default_options_response()

    @app.after_request
    def add_cors_headers(response):
        origin = _allowed_origin()
        if origin:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Methods"] = CORS_ALLOWED_METHODS
            response.headers["Access-Control-Allow-Headers"] = CORS_ALLOWED_HEADERS
            if origin != "*":
                response.headers["Vary"] = "Origin"
        return response


if __name__ == "__main__":
    settings = load_settings()
    create_app(settings).run(host="0.0.0.0", port=settings.port, debug=settings.demo_mode)
