"""
Bikepark Reports - Report API Routes
====================================

POST /reports/<report_type>      → ReportService.get_report (right: rapportages)
POST /reports/<report_type>/sql  → ReportService.get_sql (right: admin)

Body: {"reportParams": {reportGrouping, bikeparkIDs, startDT, endDT,
fillups, source, dayBeginsAt}}. The report type comes from the URL.

Validation errors surface as ReportValidationError and are turned into
400 {error, details} by the error handler.
"""

from flask import Blueprint, g, jsonify, request

from api.middleware.auth import RIGHT_ADMIN, RIGHT_REPORTS, api_key_auth
from models.report import ReportParams, ReportValidationError
from processor.report_service import ReportService

reports_bp = Blueprint('reports', __name__)


def get_report_service() -> ReportService:
    return ReportService()


def _parse_report_params(report_type: str) -> ReportParams:
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or 'reportParams' not in body:
        raise ReportValidationError("Request body must contain reportParams")
    return ReportParams.from_dict(body['reportParams'], report_type=report_type)


@reports_bp.route('/reports/<report_type>', methods=['POST'])
@api_key_auth.require_right(RIGHT_REPORTS)
def get_report(report_type: str):
    """
    Run a report.

    Returns:
        200 OK: {title, options, series, keys}
        400 Bad Request: Invalid parameters or inaccessible bikeparks
    """
    params = _parse_report_params(report_type)
    report = get_report_service().get_report(params, g.auth.accessible_bikeparks)
    return jsonify(report.to_dict()), 200


@reports_bp.route('/reports/<report_type>/sql', methods=['POST'])
@api_key_auth.require_right(RIGHT_ADMIN)
def get_report_sql(report_type: str):
    """Return the SQL a report request would run, without executing it."""
    params = _parse_report_params(report_type)
    sql = get_report_service().get_sql(params, g.auth.accessible_bikeparks)
    return jsonify({"reportType": report_type, "sql": sql}), 200
