"""
Bikepark Reports - Error Handler Middleware
Standardized error responses for all API endpoints.
"""

from flask import jsonify, Flask
from werkzeug.exceptions import HTTPException

from models.cache import CacheParamsError
from models.report import ReportValidationError
from utils.logger import logger


def register_error_handlers(app: Flask):
    """
    Register error handlers for Flask app.

    Args:
        app: Flask application instance
    """

    @app.errorhandler(ReportValidationError)
    def report_validation_error(error):
        logger.info(f"Invalid report request: {error}")
        return jsonify({
            "error": str(error),
            "details": error.details
        }), 400

    @app.errorhandler(CacheParamsError)
    def cache_params_error(error):
        logger.info(f"Invalid cache request: {error}")
        return jsonify({
            "error": "Invalid cache parameters",
            "details": str(error)
        }), 400

    @app.errorhandler(400)
    def bad_request(error):
        """Handle 400 Bad Request errors."""
        logger.warning(f"Bad request: {error}")
        return jsonify({
            "error": "Bad Request",
            "message": str(error.description) if hasattr(error, 'description') else "Invalid request"
        }), 400

    @app.errorhandler(401)
    def unauthorized(error):
        logger.warning(f"Unauthorized access: {error}")
        return jsonify({
            "error": "Unauthorized",
            "message": "Invalid or missing authentication credentials"
        }), 401

    @app.errorhandler(403)
    def forbidden(error):
        logger.warning(f"Forbidden: {error}")
        return jsonify({
            "error": "Forbidden",
            "message": str(error.description) if hasattr(error, 'description') else "Access denied"
        }), 403

    @app.errorhandler(404)
    def not_found(error):
        logger.info(f"Not found: {error}")
        return jsonify({
            "error": "Not Found",
            "message": "The requested resource was not found"
        }), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({
            "error": "Method Not Allowed",
            "message": str(error.description) if hasattr(error, 'description') else "Method not allowed"
        }), 405

    @app.errorhandler(500)
    def internal_server_error(error):
        """Handle 500 Internal Server Error."""
        logger.error(f"Internal server error: {error}", exc_info=True)
        return jsonify({
            "error": "Internal Server Error",
            "message": "An unexpected error occurred"
        }), 500

    @app.errorhandler(Exception)
    def handle_exception(error):
        """Handle all unhandled exceptions."""
        if isinstance(error, HTTPException):
            return jsonify({
                "error": error.name,
                "message": error.description
            }), error.code

        logger.error(f"Unhandled exception: {error}", exc_info=True)
        return jsonify({
            "error": "Internal Server Error",
            "message": "An unexpected error occurred"
        }), 500
