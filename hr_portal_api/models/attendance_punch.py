# hr_portal_api/models/attendance_punch.py
from __future__ import annotations

from datetime import datetime
from typing import Optional, Dict, Any

from sqlalchemy import Index, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from hr_portal_api.common.dates import format_punch_time
from hr_portal_api.extensions import db

SOURCE_EXTERNAL_API = "external_api"


class AttendancePunch(db.Model):
    """
    One biometric event as reported by the attendance device backend.

      user_id     -> device user token (NOT the HR employee id)
      state       -> 'CheckIn' | 'CheckOut' (other device states are kept verbatim)
      punch_time  -> naive local wall-clock time; the device sends no timezone
      verify_mode -> how the punch was captured (face device, manual form, ...)
      source      -> 'external_api' for rows merged from the upstream, else null

    Rows are append-only. (user_id, state, punch_time) identifies a punch.
    """

    __tablename__ = "user_attendance"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(db.String(64), index=True, nullable=False)
    state: Mapped[str] = mapped_column(db.String(32), nullable=False)
    punch_time: Mapped[datetime] = mapped_column(db.DateTime, index=True, nullable=False)

    verify_mode: Mapped[Optional[str]] = mapped_column(db.String(64), nullable=True)
    source: Mapped[Optional[str]] = mapped_column(db.String(32), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        db.DateTime, server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "state", "punch_time",
            name="uq_user_attendance_user_state_time",
        ),
        Index("ix_user_attendance_user_time", "user_id", "punch_time"),
    )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "state": self.state,
            "punch_time": format_punch_time(self.punch_time),
            "verify_mode": self.verify_mode,
            "source": self.source,
        }
