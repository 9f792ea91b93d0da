# hr_portal_api/services/attendance_weekly.py
from __future__ import annotations

import calendar
from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from hr_portal_api.common.dates import parse_punch_time
from hr_portal_api.services.attendance_logs import fetch_attendance_logs
from hr_portal_api.services.biometric_client import BiometricClient

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday")

# a lone punch on a day counts as a standard shift
SINGLE_PUNCH_SHIFT = timedelta(hours=8)


def _fmt_minutes(total: int) -> str:
    h, m = divmod(total, 60)
    return f"{h}h {m}m" if m else f"{h}h"


def _absent() -> Dict[str, str]:
    return {"timeIn": "--", "timeOut": "--", "hours": "0h", "status": "Absent"}


def _day_summary(punch_times: List[datetime]):
    punch_times = sorted(punch_times)
    first = punch_times[0]
    last = punch_times[-1] if len(punch_times) > 1 else first + SINGLE_PUNCH_SHIFT
    minutes = max(0, round((last - first).total_seconds() / 60))
    return {
        "timeIn": first.strftime("%H:%M"),
        "timeOut": last.strftime("%H:%M"),
        "hours": _fmt_minutes(minutes),
        "status": "Present",
    }, minutes


def build_weeks(records: List[Any], year: int, month: int, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """
    Monday-Friday grid for every week touching the month.

    Days with punches show first punch / last punch; future days and days
    without punches are 'Absent'.
    """
    today = today or date.today()
    by_day: Dict[date, List[datetime]] = defaultdict(list)
    for r in records:
        ts = parse_punch_time(r.get("punch_time")) if isinstance(r, dict) else None
        if ts is not None:
            by_day[ts.date()].append(ts)

    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    monday = first - timedelta(days=first.weekday())

    weeks = []
    week_no = 1
    while monday <= last:
        week: Dict[str, Any] = {"weekNumber": week_no}
        total = 0
        for offset, name in enumerate(WEEKDAYS):
            day = monday + timedelta(days=offset)
            if day > today or not by_day.get(day):
                week[name] = _absent()
                continue
            week[name], minutes = _day_summary(by_day[day])
            total += minutes
        week["totalHours"] = _fmt_minutes(total)
        weeks.append(week)
        monday += timedelta(days=7)
        week_no += 1
    return weeks


def weekly_summary(user_id: Any, year: int, month: int, today: Optional[date] = None,
                   client: Optional[BiometricClient] = None) -> List[Dict[str, Any]]:
    first = date(year, month, 1)
    last = date(year, month, calendar.monthrange(year, month)[1])
    # widen to whole weeks so leading/trailing days outside the month are filled too
    start = first - timedelta(days=first.weekday())
    end = last + timedelta(days=4 - last.weekday()) if last.weekday() < 4 else last

    result = fetch_attendance_logs(start, end, client=client)
    wanted = str(user_id).strip()
    mine = [r for r in result.records if isinstance(r, dict) and str(r.get("user_id", "")).strip() == wanted]
    return build_weeks(mine, year, month, today=today)
