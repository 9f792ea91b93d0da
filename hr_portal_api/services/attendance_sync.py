# hr_portal_api/services/attendance_sync.py
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterator, Optional, Tuple

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from hr_portal_api.extensions import db
from hr_portal_api.models.external_employee import ExternalEmployee
from hr_portal_api.services import punch_store
from hr_portal_api.services.biometric_client import BiometricClient, UpstreamError, client_from_config

log = logging.getLogger(__name__)

# one scheduled/manual sync at a time per process
_sync_lock = threading.Lock()


@contextmanager
def _sync_client(client: Optional[BiometricClient]) -> Iterator[BiometricClient]:
    """Yield the given client, or a config-built one that is closed afterwards."""
    if client is not None:
        yield client
        return
    cfg = current_app.config
    owned = client_from_config(cfg, timeout=cfg.get("BIOMETRIC_SYNC_TIMEOUT", 10))
    try:
        yield owned
    finally:
        owned.close()


def sync_attendance(start: date, end: date, client: Optional[BiometricClient] = None) -> Dict[str, Any]:
    """
    Pull upstream punches for the day range into user_attendance.
    Raises UpstreamError when the biometric API fails.
    """
    log.info("[attendance-sync] syncing %s..%s", start, end)
    with _sync_client(client) as up:
        logs = up.fetch_logs(start, end)

    if not logs:
        return {
            "success": True,
            "message": "No attendance data to sync",
            "synced": 0,
            "skipped": 0,
            "failed": 0,
            "total": 0,
        }

    res = punch_store.merge_external(logs)
    return {
        "success": True,
        "message": "Attendance data synced successfully",
        "synced": res.inserted,
        "skipped": res.skipped,
        "failed": res.failed,
        "total": res.total,
    }


def _opt_str(v: Any) -> Optional[str]:
    if v in (None, ""):
        return None
    return str(v).strip()


def sync_employees(client: Optional[BiometricClient] = None) -> Dict[str, Any]:
    """Upsert device users by pin_auto. Raises UpstreamError when the API fails."""
    with _sync_client(client) as up:
        employees = up.fetch_users()

    synced = updated = failed = 0
    for emp in employees:
        pin_auto = _opt_str(emp.get("pin_auto")) if isinstance(emp, dict) else None
        if not pin_auto:
            log.warning("[employee-sync] record without pin_auto skipped: %r", emp)
            continue
        try:
            row = ExternalEmployee.query.filter_by(pin_auto=pin_auto).first()
            is_new = row is None
            if is_new:
                row = ExternalEmployee(pin_auto=pin_auto)
                db.session.add(row)
            row.pin_manual = _opt_str(emp.get("pin_manual"))
            row.user_name = _opt_str(emp.get("user_name"))
            row.privilege = _opt_str(emp.get("privilege"))
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            log.exception("[employee-sync] saving pin_auto=%s failed: %s", pin_auto, e)
            failed += 1
            continue
        if is_new:
            synced += 1
        else:
            updated += 1

    log.info("[employee-sync] %s new, %s updated, %s failed of %s", synced, updated, failed, len(employees))
    return {
        "success": True,
        "message": "Employees synced successfully",
        "synced": synced,
        "updated": updated,
        "failed": failed,
        "total": len(employees),
    }


# ---------- scheduling ----------

@dataclass(frozen=True)
class SyncWindow:
    start_hour: int = 9
    end_hour: int = 18
    weekdays: Tuple[int, ...] = (0, 1, 2, 3, 4)  # Monday..Friday

    def is_weekday(self, now: datetime) -> bool:
        return now.weekday() in self.weekdays

    def is_working_hours(self, now: datetime) -> bool:
        return self.start_hour <= now.hour < self.end_hour

    def is_open(self, now: datetime) -> bool:
        return self.is_weekday(now) and self.is_working_hours(now)


DEFAULT_WINDOW = SyncWindow()


def run_scheduled_sync(now: Optional[datetime] = None, window: SyncWindow = DEFAULT_WINDOW,
                       client: Optional[BiometricClient] = None) -> Optional[Dict[str, Any]]:
    """Sync today's punches if inside the working window. Returns None when skipped."""
    now = now or datetime.now()
    if not window.is_weekday(now):
        log.info("[attendance-sync] weekend, skipping")
        return None
    if not window.is_working_hours(now):
        log.info("[attendance-sync] outside working hours (%s:00), skipping", now.hour)
        return None
    if not _sync_lock.acquire(blocking=False):
        log.info("[attendance-sync] sync already running, skipping")
        return None
    try:
        today = now.date()
        return sync_attendance(today, today, client=client)
    finally:
        _sync_lock.release()


def trigger_manual_sync(now: Optional[datetime] = None, window: SyncWindow = DEFAULT_WINDOW,
                        client: Optional[BiometricClient] = None) -> Dict[str, Any]:
    now = now or datetime.now()
    if not window.is_weekday(now):
        return {"success": False, "message": "Today is weekend. Sync only runs Monday-Friday."}
    if not window.is_working_hours(now):
        return {
            "success": False,
            "message": f"Outside working hours ({window.start_hour}:00 - {window.end_hour}:00). "
                       "Manual sync not allowed.",
        }
    result = run_scheduled_sync(now=now, window=window, client=client)
    if result is None:
        return {"success": False, "message": "A sync is already in progress."}
    return {"success": True, "message": "Manual sync triggered", "result": result}


class AttendanceSyncScheduler:
    """Hourly background sync (minute 0) built on APScheduler."""

    JOB_ID = "attendance-hourly-sync"

    def __init__(self, app=None, window: SyncWindow = DEFAULT_WINDOW):
        self.app = app
        self.window = window
        self._scheduler = None

    def _job(self):
        with self.app.app_context():
            try:
                result = run_scheduled_sync(window=self.window)
            except UpstreamError as e:
                log.error("[attendance-sync] scheduled sync failed: %s", e.message)
                return
            if result:
                log.info(
                    "[attendance-sync] scheduled sync: %s new, %s skipped, %s total",
                    result["synced"], result["skipped"], result["total"],
                )

    def start(self):
        if self._scheduler is not None:
            log.warning("[attendance-sync] scheduler already running")
            return
        from apscheduler.schedulers.background import BackgroundScheduler

        self._scheduler = BackgroundScheduler(daemon=True)
        self._scheduler.add_job(self._job, "cron", minute=0, id=self.JOB_ID,
                                max_instances=1, coalesce=True)
        self._scheduler.start()
        log.info("[attendance-sync] scheduler started: hourly, %s:00-%s:00, Mon-Fri",
                 self.window.start_hour, self.window.end_hour)

    def stop(self):
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            log.info("[attendance-sync] scheduler stopped")

    @property
    def running(self) -> bool:
        return self._scheduler is not None


scheduler = AttendanceSyncScheduler()


def sync_status(now: Optional[datetime] = None, window: SyncWindow = DEFAULT_WINDOW) -> Dict[str, Any]:
    now = now or datetime.now()
    return {
        "is_running": scheduler.running,
        "is_weekday": window.is_weekday(now),
        "is_working_hours": window.is_working_hours(now),
        "current_time": now.strftime("%Y-%m-%d %H:%M:%S"),
        "sync_in_progress": _sync_lock.locked(),
    }
