"""Flask application factory and bootstrap.

This module provides the create_app() factory function for initializing
the Flask application with all blueprints, middleware, and configuration.
"""
from __future__ import annotations
import ipaddress
import logging
from typing import Optional

from flask import Flask, abort, request
from sqlalchemy.engine import Engine
from werkzeug.middleware.proxy_fix import ProxyFix

from authbridge.config import AppConfig, load_settings
from authbridge.core import lifecycle
from authbridge.services import build_services

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Application Factory
# ─────────────────────────────────────────────────────────────────────────────
def create_app(cfg: Optional[AppConfig] = None, engine: Optional[Engine] = None) -> Flask:
    """Create and configure Flask application.

    Args:
        cfg: Configuration (loaded from the environment when omitted)
        engine: SQLAlchemy engine (built from ``cfg.database_url`` when omitted)
    """
    cfg = cfg or load_settings()

    app = Flask(__name__)

    # Store config for easy access in routes
    app.config["APP_CONFIG"] = cfg
    app.config["JSON_SORT_KEYS"] = False

    services = build_services(cfg, engine)
    app.extensions["authbridge"] = services

    if cfg.demo_mode:
        lifecycle.install(services.engine, services.tables)

    # Trust X-Forwarded-* headers from proxy (nginx); X-Forwarded-Proto drives request.is_secure
    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1)  # type: ignore

    trusted_proxy_networks = _parse_networks(cfg.trusted_proxy_ips)
    app.config["TRUSTED_PROXY_NETWORKS"] = trusted_proxy_networks

    # Register blueprints
    from authbridge.api import errors, health, sync

    app.register_blueprint(health.bp)
    app.register_blueprint(sync.bp)

    # Bounds bodies without a Content-Length header (chunked) too
    app.config["MAX_CONTENT_LENGTH"] = sync.JSON_MAX_SIZE_BYTES

    # Register error handlers
    errors.register_error_handlers(app)

    # Register middleware/before_request handlers
    _register_middleware(app, trusted_proxy_networks)

    mode_label = "DEMO" if cfg.demo_mode else "PRODUCTION"
    logger.info(f"[flask_app] Mode={mode_label}; sync endpoint at /better-auth/v1/sync-user")
    if not services.verifier.configured:
        logger.warning("[flask_app] API secret not configured: every sync request will be refused")

    return app


def _parse_networks(raw: str) -> list:
    networks = []
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        try:
            networks.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning(f"Ignoring invalid TRUSTED_PROXY_IPS entry: {entry!r}")
    return networks


def _register_middleware(app: Flask, trusted_proxy_networks: list):
    """Register before_request middleware."""

    @app.before_request
    def enforce_proxy_headers() -> None:
        """Validate proxy headers from trusted sources only."""
        original_remote = (request.environ.get("werkzeug.proxy_fix.orig") or {}).get("REMOTE_ADDR")
        has_forwarded = any(
            header in request.headers for header in ("X-Forwarded-For", "X-Forwarded-Proto", "X-Forwarded-Host")
        )
        if original_remote and has_forwarded:
            try:
                address = ipaddress.ip_address(original_remote)
            except ValueError:
                abort(400, description="Invalid proxy address")
            if not any(address in network for network in trusted_proxy_networks):
                abort(400, description="Untrusted proxy")

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for and "," in forwarded_for:
            abort(400, description="Multiple forwarded clients not permitted")
