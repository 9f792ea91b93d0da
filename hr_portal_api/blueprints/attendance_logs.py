# hr_portal_api/blueprints/attendance_logs.py
from __future__ import annotations

import logging
from typing import Any

from flask import Blueprint, request, jsonify

from hr_portal_api.common.dates import parse_api_date
from hr_portal_api.common.http import fail
from hr_portal_api.services.attendance_logs import fetch_attendance_logs
from hr_portal_api.services.attendance_weekly import weekly_summary

log = logging.getLogger(__name__)

bp = Blueprint("attendance_logs", __name__, url_prefix="/api/attendance")

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}


# ---------- helpers ----------
def _as_bool(val: Any, field: str) -> bool:
    if val is None or val == "":
        return False
    if isinstance(val, bool):
        return val
    v = str(val).strip().lower()
    if v in ("true", "1", "yes"):
        return True
    if v in ("false", "0", "no"):
        return False
    raise ValueError(f"{field} must be true/false")


def _as_int(val, field) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be integer")


def _json_body() -> dict:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _date_range(body: dict):
    start = parse_api_date(body.get("start_date"))
    end = parse_api_date(body.get("end_date"))
    if end < start:
        raise ValueError("end_date is before start_date")
    return start, end


# ---------- routes ----------
@bp.route("/logs", methods=["POST", "OPTIONS"])
def attendance_logs():
    """
    POST /api/attendance/logs
    { "start_date": "01/10/2025", "end_date": "07/10/2025", "force_refresh": false }

    -> { "data": [...punches...], "source": "database", "count": 12 }

    source: database | external_api_fresh | external_api | none
    """
    if request.method == "OPTIONS":
        return "", 200, CORS_HEADERS

    body = _json_body()
    try:
        start, end = _date_range(body)
        force = _as_bool(body.get("force_refresh"), "force_refresh")
    except ValueError as ex:
        return fail("Invalid request", 400, details=str(ex), headers=CORS_HEADERS)

    result = fetch_attendance_logs(start, end, force_refresh=force)
    log.info("[attendance-logs] returning %s records from %s", result.count, result.source)
    return jsonify(result.as_dict()), 200, CORS_HEADERS


@bp.route("/weekly", methods=["POST", "OPTIONS"])
def attendance_weekly():
    """
    POST /api/attendance/weekly
    { "employee_id": "7", "year": 2025, "month": 10 }   (month 1-12)

    -> { "success": true, "data": [ { "weekNumber": 1, "monday": {...}, ..., "totalHours": "40h" } ] }
    """
    if request.method == "OPTIONS":
        return "", 200, CORS_HEADERS

    body = _json_body()
    emp = body.get("employee_id", body.get("employeeId"))
    if emp in (None, ""):
        return fail("Invalid request", 400, details="employee_id is required", headers=CORS_HEADERS)
    try:
        year = _as_int(body.get("year"), "year")
        month = _as_int(body.get("month"), "month")
        if not 1 <= month <= 12:
            raise ValueError("month must be 1-12")
    except ValueError as ex:
        return fail("Invalid request", 400, details=str(ex), headers=CORS_HEADERS)

    weeks = weekly_summary(emp, year, month)
    return jsonify({"success": True, "data": weeks}), 200, CORS_HEADERS

