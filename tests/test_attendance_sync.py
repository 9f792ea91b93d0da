from datetime import date, datetime

import pytest
from sqlalchemy.exc import OperationalError

from hr_portal_api.extensions import db
from hr_portal_api.models.attendance_punch import AttendancePunch
from hr_portal_api.models.external_employee import ExternalEmployee
from hr_portal_api.services import attendance_sync
from hr_portal_api.services.attendance_sync import (
    SyncWindow,
    run_scheduled_sync,
    sync_attendance,
    sync_employees,
    sync_status,
    trigger_manual_sync,
)
from hr_portal_api.services.biometric_client import UpstreamError

LOGS = [
    {"user_id": "7", "state": "CheckIn", "punch_time": "2025-10-06 09:02:00", "verify_mode": "FACE"},
    {"user_id": "7", "state": "CheckOut", "punch_time": "2025-10-06 18:10:00", "verify_mode": "FACE"},
]

MONDAY_10AM = datetime(2025, 10, 6, 10, 0)
SATURDAY_10AM = datetime(2025, 10, 4, 10, 0)
MONDAY_8PM = datetime(2025, 10, 6, 20, 0)


def test_sync_attendance_counts(session, fake_upstream):
    up = fake_upstream(logs=LOGS)
    res = sync_attendance(date(2025, 10, 6), date(2025, 10, 6), client=up)
    assert (res["synced"], res["skipped"], res["failed"], res["total"]) == (2, 0, 0, 2)
    assert AttendancePunch.query.count() == 2


def test_sync_attendance_nothing_upstream(session, fake_upstream):
    res = sync_attendance(date(2025, 10, 6), date(2025, 10, 6), client=fake_upstream(logs=[]))
    assert res["message"] == "No attendance data to sync"
    assert res["synced"] == 0


def test_sync_attendance_raises_on_upstream_failure(session, fake_upstream):
    with pytest.raises(UpstreamError):
        sync_attendance(date(2025, 10, 6), date(2025, 10, 6), client=fake_upstream(error="503"))


def test_sync_employees_upserts_by_pin_auto(session, fake_upstream):
    up = fake_upstream(users=[
        {"pin_auto": 7, "pin_manual": "1007", "user_name": "Ayesha", "privilege": 0, "password": "secret"},
        {"pin_manual": "nope"},
    ])
    assert sync_employees(client=up)["synced"] == 1

    up.users = [{"pin_auto": "7", "pin_manual": "1007", "user_name": "Ayesha K", "privilege": "14"}]
    res = sync_employees(client=up)
    assert (res["synced"], res["updated"], res["total"]) == (0, 1, 1)

    row = ExternalEmployee.query.filter_by(pin_auto="7").one()
    assert row.user_name == "Ayesha K"
    assert row.privilege == "14"
    assert "password" not in row.to_dict()
    assert row.created_at is not None


def test_sync_employees_does_not_count_failed_writes(session, fake_upstream, monkeypatch):
    def boom():
        raise OperationalError("INSERT INTO external_employees", {}, Exception("database is locked"))

    monkeypatch.setattr(db.session, "commit", boom)
    res = sync_employees(client=fake_upstream(users=[{"pin_auto": "7", "user_name": "Ayesha"}]))
    monkeypatch.undo()

    assert (res["synced"], res["updated"], res["failed"], res["total"]) == (0, 0, 1, 1)
    assert ExternalEmployee.query.count() == 0


def test_config_built_sync_client_is_closed(app, session, monkeypatch, fake_upstream):
    up = fake_upstream(logs=LOGS, users=[{"pin_auto": "7"}])
    monkeypatch.setattr(attendance_sync, "client_from_config", lambda cfg, timeout=None: up)

    sync_attendance(date(2025, 10, 6), date(2025, 10, 6))
    assert up.closed is True

    up.closed = False
    sync_employees()
    assert up.closed is True


def test_caller_supplied_sync_client_is_left_open(session, fake_upstream):
    up = fake_upstream(logs=LOGS)
    sync_attendance(date(2025, 10, 6), date(2025, 10, 6), client=up)
    assert up.closed is False


@pytest.mark.parametrize("now,weekday,hours", [
    (MONDAY_10AM, True, True),
    (SATURDAY_10AM, False, True),
    (MONDAY_8PM, True, False),
    (datetime(2025, 10, 6, 9, 0), True, True),
    (datetime(2025, 10, 6, 18, 0), True, False),
])
def test_sync_window(now, weekday, hours):
    w = SyncWindow()
    assert w.is_weekday(now) is weekday
    assert w.is_working_hours(now) is hours
    assert w.is_open(now) is (weekday and hours)


def test_scheduled_sync_runs_for_today_inside_window(session, fake_upstream):
    up = fake_upstream(logs=LOGS)
    res = run_scheduled_sync(now=MONDAY_10AM, client=up)
    assert res["synced"] == 2
    assert up.calls == [("logs", date(2025, 10, 6), date(2025, 10, 6))]


@pytest.mark.parametrize("now", [SATURDAY_10AM, MONDAY_8PM])
def test_scheduled_sync_skips_outside_window(session, fake_upstream, now):
    up = fake_upstream(logs=LOGS)
    assert run_scheduled_sync(now=now, client=up) is None
    assert up.calls == []


def test_scheduled_sync_skips_while_another_runs(session, fake_upstream):
    up = fake_upstream(logs=LOGS)
    attendance_sync._sync_lock.acquire()
    try:
        assert run_scheduled_sync(now=MONDAY_10AM, client=up) is None
        assert sync_status(now=MONDAY_10AM)["sync_in_progress"] is True
    finally:
        attendance_sync._sync_lock.release()
    assert up.calls == []


def test_manual_trigger_messages(session, fake_upstream):
    up = fake_upstream(logs=LOGS)
    assert trigger_manual_sync(now=SATURDAY_10AM, client=up) == {
        "success": False, "message": "Today is weekend. Sync only runs Monday-Friday."
    }
    assert trigger_manual_sync(now=MONDAY_8PM, client=up)["success"] is False

    res = trigger_manual_sync(now=MONDAY_10AM, client=up)
    assert res["success"] is True
    assert res["result"]["synced"] == 2


def test_status_snapshot():
    st = sync_status(now=SATURDAY_10AM)
    assert st == {
        "is_running": False,
        "is_weekday": False,
        "is_working_hours": True,
        "current_time": "2025-10-04 10:00:00",
        "sync_in_progress": False,
    }


def test_scheduler_job_runs_inside_app_context(app, monkeypatch):
    calls = []
    monkeypatch.setattr(attendance_sync, "run_scheduled_sync", lambda window: calls.append(window) or None)
    sched = attendance_sync.AttendanceSyncScheduler(app=app)
    sched._job()
    assert calls == [sched.window]
    assert sched.running is False
