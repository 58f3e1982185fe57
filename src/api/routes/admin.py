"""
Bikepark Reports - Admin API Endpoints
Cache lifecycle actions and cache update runs. All endpoints need the
'admin' right.
"""

import threading
from datetime import timedelta
from typing import Optional

from flask import Blueprint, jsonify, request

from api.middleware.auth import RIGHT_ADMIN, api_key_auth
from models.cache import CacheErrorCode, CacheParams, CacheParamsError
from processor.cache_manager import CACHE_MANAGERS, get_cache_manager
from processor.cache_update_driver import CacheUpdateDriver
from utils.logger import logger
from utils.timezone import day_after, get_now_local, parse_iso_datetime, start_of_day

admin_bp = Blueprint('admin', __name__)

# Default start of an update run when no 'from' is given
DEFAULT_UPDATE_LOOKBACK_DAYS = 61


def _parse_flag(value: Optional[str]) -> bool:
    return (value or '').strip().lower() in ('1', 'true', 'yes', 'on')


def _error(message: str, details, status_code: int):
    return jsonify({"error": message, "details": details}), status_code


@admin_bp.route('/admin/cache/<cache_name>', methods=['POST'])
@api_key_auth.require_right(RIGHT_ADMIN)
def manage_cache(cache_name: str):
    """
    Run a lifecycle action on one cache table.

    Request Body:
        databaseParams: {action, startDate, endDate, selectedBikeparkIDs,
                         allDates, allBikeparks}

    Returns:
        200 OK: CacheResult
        400 Bad Request: Invalid payload
        404 Not Found: Unknown cache name
        500 Internal Server Error: Action failed (CacheResult in details)
    """
    manager = get_cache_manager(cache_name)
    if manager is None:
        return _error(f"Unknown cache: {cache_name}", {"allowed": sorted(CACHE_MANAGERS)}, 404)

    body = request.get_json(silent=True)
    if not isinstance(body, dict) or 'databaseParams' not in body:
        return _error("Invalid request", "Request body must contain databaseParams", 400)

    try:
        params = CacheParams.from_dict(body['databaseParams'])
    except CacheParamsError as e:
        return _error("Invalid request", str(e), 400)

    result = manager.manage(params)
    if not result.success:
        status_code = 400 if result.error_code is CacheErrorCode.INVALID_PARAMS else 500
        return _error(result.message or "Cache action failed", result.to_dict(), status_code)

    return jsonify(result.to_dict()), 200


def _run_update(driver: CacheUpdateDriver, start, end, full: bool):
    results = driver.run(start, end, full=full)
    return {name: result.to_dict() for name, result in results.items()}


@admin_bp.route('/admin/update-cache', methods=['GET', 'POST'])
@api_key_auth.require_right(RIGHT_ADMIN)
def update_cache():
    """
    Refresh all report caches for a date range.

    Query Parameters:
        from (str): First day, ISO date (default: two months ago)
        to (str): Last day, ISO date (default: tomorrow)
        full (bool): One update for the whole range instead of one per day
        background (bool): Return 202 immediately and run in a thread

    Returns:
        200 OK: Per-cache run results
        202 Accepted: Run started in the background
        400 Bad Request: Invalid dates
        500 Internal Server Error: One or more caches failed
    """
    try:
        start = parse_iso_datetime(request.args.get('from'))
        end = parse_iso_datetime(request.args.get('to'))
    except ValueError as e:
        return _error("Invalid date", str(e), 400)

    today = start_of_day(get_now_local())
    end = end or day_after(today)
    start = start or today - timedelta(days=DEFAULT_UPDATE_LOOKBACK_DAYS)
    if start_of_day(end) < start_of_day(start):
        return _error("Invalid date range", {"from": start.isoformat(), "to": end.isoformat()}, 400)

    full = _parse_flag(request.args.get('full'))
    driver = CacheUpdateDriver()

    if _parse_flag(request.args.get('background')):
        def worker():
            try:
                _run_update(driver, start, end, full)
            except Exception as e:
                logger.error(f"Background cache update failed: {e}", exc_info=True)

        threading.Thread(target=worker, name="cache-update", daemon=True).start()
        return jsonify({
            "status": "started",
            "from": start.date().isoformat(),
            "to": end.date().isoformat(),
            "full": full
        }), 202

    results = _run_update(driver, start, end, full)
    success = all(result["success"] for result in results.values())
    return jsonify({"success": success, "results": results}), 200 if success else 500
