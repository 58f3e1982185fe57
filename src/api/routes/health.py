"""
Bikepark Reports - Health Check Endpoint
Provides API health status, database connectivity and cache table presence.
"""

from flask import Blueprint, jsonify
from datetime import datetime, timezone
from sqlalchemy import inspect, text
from sqlalchemy.exc import SQLAlchemyError

from database.connection import get_db_connection
from database.repositories.cache_table_repository import (
    DURATION_CACHE,
    OCCUPANCY_CACHE,
    TRANSACTIONS_CACHE,
)
from utils.logger import logger

health_bp = Blueprint('health', __name__)

CACHE_DEFINITIONS = (TRANSACTIONS_CACHE, OCCUPANCY_CACHE, DURATION_CACHE)


@health_bp.route('/health', methods=['GET'])
def health_check():
    """
    Health check endpoint.

    Response:
        200 OK: Database reachable (status 'degraded' when a cache table is missing)
        503 Service Unavailable: Database connection failed
    """
    health_data = {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
        "api_version": "1.0.0",
        "checks": {}
    }

    try:
        with get_db_connection() as conn:
            conn.execute(text("SELECT 1")).fetchone()

            health_data["checks"]["database"] = {
                "status": "healthy",
                "message": "Database connection successful"
            }

            inspector = inspect(conn)
            missing = [d.name for d in CACHE_DEFINITIONS if not inspector.has_table(d.name)]
            health_data["checks"]["cache_tables"] = {
                "status": "healthy" if not missing else "missing",
                "missing": missing
            }

    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}", exc_info=True)

        health_data["status"] = "unhealthy"
        health_data["checks"]["database"] = {
            "status": "unhealthy",
            "message": f"Database connection failed: {type(e).__name__}"
        }

        return jsonify(health_data), 503

    if health_data["checks"]["cache_tables"]["status"] != "healthy":
        health_data["status"] = "degraded"

    return jsonify(health_data), 200
