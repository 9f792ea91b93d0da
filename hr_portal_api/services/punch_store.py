# hr_portal_api/services/punch_store.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, asc
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from hr_portal_api.common.dates import end_of_day, parse_punch_time, start_of_day
from hr_portal_api.extensions import db
from hr_portal_api.models.attendance_punch import AttendancePunch, SOURCE_EXTERNAL_API

log = logging.getLogger(__name__)

INSERTED = "inserted"
SKIPPED = "skipped"


@dataclass
class MergeResult:
    inserted: int = 0
    skipped: int = 0
    failed: int = 0
    total: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "inserted": self.inserted,
            "skipped": self.skipped,
            "failed": self.failed,
            "total": self.total,
        }


def find_in_range(start: date, end: date) -> List[AttendancePunch]:
    """Punches with punch_time in [start 00:00, end 23:59:59.999], oldest first."""
    return (
        AttendancePunch.query.filter(
            and_(
                AttendancePunch.punch_time >= start_of_day(start),
                AttendancePunch.punch_time <= end_of_day(end),
            )
        )
        .order_by(asc(AttendancePunch.punch_time), asc(AttendancePunch.id))
        .all()
    )


def find_punch(user_id: str, state: str, punch_time: datetime) -> Optional[AttendancePunch]:
    return AttendancePunch.query.filter(
        and_(
            AttendancePunch.user_id == user_id,
            AttendancePunch.state == state,
            AttendancePunch.punch_time == punch_time,
        )
    ).first()


def insert_if_absent(
    user_id: str,
    state: str,
    punch_time: datetime,
    verify_mode: Optional[str] = None,
    source: Optional[str] = None,
) -> str:
    """
    Insert one punch in its own commit unless the triple is already stored.

    A concurrent writer can land the same triple between the lookup and the
    commit; the unique constraint turns that into an IntegrityError, which is
    reported as a skip. Any other database error is re-raised.
    """
    if find_punch(user_id, state, punch_time) is not None:
        return SKIPPED

    db.session.add(
        AttendancePunch(
            user_id=user_id,
            state=state,
            punch_time=punch_time,
            verify_mode=verify_mode,
            source=source,
        )
    )
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return SKIPPED
    except SQLAlchemyError:
        db.session.rollback()
        raise
    return INSERTED


def _normalize_record(raw: Any) -> Optional[Dict[str, Any]]:
    if not isinstance(raw, dict):
        return None
    user_id = raw.get("user_id")
    state = raw.get("state")
    punch_time = parse_punch_time(raw.get("punch_time"))
    if user_id in (None, "") or not state or punch_time is None:
        return None
    verify_mode = raw.get("verify_mode")
    return {
        "user_id": str(user_id).strip(),
        "state": str(state).strip(),
        "punch_time": punch_time,
        "verify_mode": str(verify_mode) if verify_mode not in (None, "") else None,
    }


def merge_external(records: Iterable[Any]) -> MergeResult:
    """
    Persist upstream punches that are not stored yet, tagged 'external_api'.

    Local rows always win: an existing triple is skipped, never overwritten.
    Each record is independent; bad records and write failures are logged and
    counted, and the loop moves on.
    """
    result = MergeResult()
    for idx, raw in enumerate(records, start=1):
        result.total += 1
        n = _normalize_record(raw)
        if n is None:
            result.failed += 1
            log.warning("[punch-merge] record %s skipped, missing user_id/state/punch_time: %r", idx, raw)
            continue
        try:
            outcome = insert_if_absent(source=SOURCE_EXTERNAL_API, **n)
        except SQLAlchemyError as e:
            result.failed += 1
            log.exception(
                "[punch-merge] write failed user=%s state=%s time=%s: %s",
                n["user_id"], n["state"], n["punch_time"], e,
            )
            continue
        if outcome == INSERTED:
            result.inserted += 1
        else:
            result.skipped += 1

    log.info(
        "[punch-merge] %s new, %s skipped, %s failed of %s",
        result.inserted, result.skipped, result.failed, result.total,
    )
    return result


def serialize_punch(p: AttendancePunch) -> Dict[str, Any]:
    return p.to_dict()
