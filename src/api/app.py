"""
Bikepark Reports - Flask API Application
Main API application with Blueprints, CORS, and middleware.
"""

import time

from flask import Flask, g, jsonify, request
from flask_cors import CORS

from utils.config import FLASK_ENV, FLASK_DEBUG, SECRET_KEY, config
from utils.logger import logger, log_api_request
from api.routes.health import health_bp
from api.routes.reports import reports_bp
from api.routes.admin import admin_bp
from api.middleware.error_handler import register_error_handlers


def create_app() -> Flask:
    """
    Create and configure Flask application.

    Returns:
        Configured Flask app instance
    """
    app = Flask(__name__)
    debug = FLASK_DEBUG and not config.is_production

    app.config['ENV'] = FLASK_ENV
    app.config['DEBUG'] = debug
    app.config['SECRET_KEY'] = SECRET_KEY
    app.json.sort_keys = False

    CORS(app, resources={
        r"/api/*": {
            "origins": "*",  # Configure for production
            "methods": ["GET", "POST", "OPTIONS"],
            "allow_headers": [
                "Content-Type",
                "X-API-Key",
                "X-Accessible-Bikeparks",
                "X-User-Rights"
            ]
        }
    })

    app.register_blueprint(health_bp, url_prefix='/api')
    app.register_blueprint(reports_bp, url_prefix='/api')
    app.register_blueprint(admin_bp, url_prefix='/api')

    register_error_handlers(app)

    @app.before_request
    def start_timer():
        g.request_started = time.time()

    @app.after_request
    def log_request(response):
        started = g.get('request_started')
        if started is not None:
            log_api_request(
                request.method,
                request.path,
                response.status_code,
                round((time.time() - started) * 1000, 1)
            )
        return response

    logger.info(f"Flask app created (env={FLASK_ENV}, debug={debug})")

    @app.route('/')
    def index():
        """Root endpoint with API information."""
        return jsonify({
            "name": "Bikepark Reports API",
            "version": "1.0.0",
            "status": "running",
            "endpoints": {
                "health": "/api/health",
                "reports": "/api/reports/<report_type>",
                "cache": "/api/admin/cache/<cache_name>",
                "update_cache": "/api/admin/update-cache"
            }
        })

    return app


# Create app instance for WSGI deployment
app = create_app()


if __name__ == '__main__':
    app.run(
        host='0.0.0.0',
        port=5000,
        debug=app.debug
    )
