# hr_portal_api/common/dates.py
from __future__ import annotations

from datetime import date, datetime, time
from typing import Any

# the biometric API and the portal UI exchange calendar days as DD/MM/YYYY
API_DATE_FORMAT = "%d/%m/%Y"
PUNCH_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

_DT_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

END_OF_DAY = time(23, 59, 59, 999000)


def parse_api_date(value: Any) -> date:
    """Parse a DD/MM/YYYY string. Raises ValueError on anything else."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        raise ValueError("date must be a DD/MM/YYYY string")
    return datetime.strptime(value.strip(), API_DATE_FORMAT).date()


def format_api_date(d: date) -> str:
    return d.strftime(API_DATE_FORMAT)


def start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def end_of_day(d: date) -> datetime:
    """Last millisecond of the day, so range queries include the whole end date."""
    return datetime.combine(d, END_OF_DAY)


def format_punch_time(dt: datetime | None) -> str | None:
    # wall-clock components as stored; no UTC conversion
    if dt is None:
        return None
    return dt.strftime(PUNCH_TIME_FORMAT)


def parse_punch_time(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        s = str(value).strip()
        dt = None
        # prefer ISO
        try:
            dt = datetime.fromisoformat(s.replace(" ", "T", 1))
        except ValueError:
            for fmt in _DT_FORMATS:
                try:
                    dt = datetime.strptime(s, fmt)
                    break
                except ValueError:
                    continue
        if dt is None:
            return None
    if dt.tzinfo is not None:
        dt = dt.astimezone().replace(tzinfo=None)
    return dt
