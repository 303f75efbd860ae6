"""Error handlers for the application.

Every error is rendered as ``{"code", "message", "data": {"status"}}``;
stack traces and raw store errors never reach the client.
"""
from flask import jsonify
from werkzeug.exceptions import HTTPException


def _error(code: str, message: str, status: int):
    return jsonify({"code": code, "message": message, "data": {"status": status}}), status


def register_error_handlers(app):
    """Register error handlers with the Flask app."""

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        return _error("rest_bad_request", getattr(error, "description", None) or "Bad Request", 400)

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 Not Found errors."""
        return _error("rest_no_route", "No route was found matching the URL and request method.", 404)

    @app.errorhandler(405)
    def method_not_allowed(error):
        return _error("rest_no_route", "No route was found matching the URL and request method.", 405)

    @app.errorhandler(413)
    def request_too_large(error):
        return _error("rest_payload_too_large", "Request payload too large.", 413)

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 Internal Server Error."""
        # ALWAYS log the full error (even in production) - logs are secure
        app.logger.error(f"Internal error: {error}", exc_info=True)
        return _error("internal_error", "An unexpected error occurred.", 500)

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle uncaught exceptions."""
        # Pass through HTTP errors
        if isinstance(error, HTTPException):
            return _error("rest_error", error.description or error.name, error.code or 500)

        app.logger.error(f"Unhandled exception: {error}", exc_info=True)
        return _error("internal_error", "An unexpected error occurred.", 500)
