# hr_portal_api/blueprints/attendance_sync.py
from __future__ import annotations

import logging

from flask import Blueprint, request, jsonify

from hr_portal_api.common.dates import parse_api_date
from hr_portal_api.common.errors import APIError
from hr_portal_api.services.attendance_sync import (
    sync_attendance,
    sync_employees,
    sync_status,
    trigger_manual_sync,
)
from hr_portal_api.services.biometric_client import UpstreamError

log = logging.getLogger(__name__)

bp = Blueprint("attendance_sync", __name__, url_prefix="/api/attendance/sync")


def _upstream_failed(what: str, e: UpstreamError) -> APIError:
    log.error("[attendance-sync] %s failed: %s", what, e.message)
    return APIError("UPSTREAM_ERROR", f"Failed to sync {what}", 502, e.body or e.message)


@bp.post("")
def sync_logs():
    """
    POST /api/attendance/sync   { "start_date": "DD/MM/YYYY", "end_date": "DD/MM/YYYY" }
    -> { success, message, synced, skipped, failed, total }
    """
    body = request.get_json(silent=True)
    body = body if isinstance(body, dict) else {}
    try:
        start = parse_api_date(body.get("start_date"))
        end = parse_api_date(body.get("end_date"))
    except ValueError as ex:
        raise APIError("INVALID_REQUEST", "Invalid request", 400, str(ex))
    try:
        return jsonify(sync_attendance(start, end))
    except UpstreamError as e:
        raise _upstream_failed("attendance data", e)


@bp.get("")
def sync_device_users():
    """GET /api/attendance/sync -> { success, message, synced, updated, total }"""
    try:
        return jsonify(sync_employees())
    except UpstreamError as e:
        raise _upstream_failed("employees", e)


@bp.get("/status")
def status():
    st = sync_status()
    return jsonify({
        "success": True,
        "status": st,
        "message": "Sync service is running" if st["is_running"] else "Sync service is stopped",
    })


@bp.post("/status")
def manual_trigger():
    """Sync today's punches now; refused on weekends and outside working hours."""
    try:
        return jsonify(trigger_manual_sync())
    except UpstreamError as e:
        raise _upstream_failed("attendance data", e)
