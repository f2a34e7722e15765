"""Flask application factory for LOGSYNC.

This module creates and configures the Flask application instance.
"""
import time

from flask import Flask, g, request

from logsync.config import OBS_ROUTE_SLOW_MS
from logsync.services.shared.observability import _logger


def create_app():
    """Create and configure the Flask application."""
    app = Flask(__name__)

    # Register blueprints
    from logsync.api.routes import bp as routes_bp
    app.register_blueprint(routes_bp)

    @app.before_request
    def track_request_start():
        g.request_start_time = time.time()

    @app.after_request
    def apply_server_policies(response):
        if hasattr(g, 'request_start_time'):
            duration_ms = (time.time() - g.request_start_time) * 1000
            if duration_ms > OBS_ROUTE_SLOW_MS:
                _logger.warning(f"Slow route: {request.endpoint} ({duration_ms:.1f}ms) - {request.path}")

        response.headers['X-Content-Type-Options'] = 'nosniff'
        if request.path.startswith('/api/'):
            response.headers['Cache-Control'] = 'no-cache, no-store, must-revalidate'
        return response

    return app
