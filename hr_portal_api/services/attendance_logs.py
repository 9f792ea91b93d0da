# hr_portal_api/services/attendance_logs.py
"""
Attendance log lookup: local punches first, the biometric API when asked to
refresh or when nothing is stored for the range.

    1. read [start, end 23:59:59.999] from user_attendance (always)
    2. force_refresh  -> upstream; on success merge + return upstream rows
                         tagged 'external_api_fresh', on failure fall through
    3. local rows     -> return them tagged 'database'
    4. nothing stored -> upstream once; 'external_api' on success, else
                         an empty result tagged 'none'

Upstream problems never raise out of here. Store errors do.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from flask import current_app

from hr_portal_api.services import punch_store
from hr_portal_api.services.biometric_client import (
    BiometricClient,
    UpstreamError,
    client_from_config,
)

log = logging.getLogger(__name__)


class Provenance:
    DATABASE = "database"
    EXTERNAL_API_FRESH = "external_api_fresh"
    EXTERNAL_API = "external_api"
    NONE = "none"


@dataclass
class LogsResult:
    records: List[Any] = field(default_factory=list)
    source: str = Provenance.NONE

    @property
    def count(self) -> int:
        return len(self.records)

    def as_dict(self) -> Dict[str, Any]:
        return {"data": self.records, "source": self.source, "count": self.count}


def _try_upstream(client: BiometricClient, start: date, end: date) -> Optional[List[Any]]:
    try:
        return client.fetch_logs(start, end)
    except UpstreamError as e:
        log.warning(
            "[attendance-logs] upstream unavailable for %s..%s: %s (status=%s)",
            start, end, e.message, e.status,
        )
        return None


def _reconcile(local: List[Dict[str, Any]], start_date: date, end_date: date,
               force_refresh: bool, client: Optional[BiometricClient]) -> LogsResult:
    if force_refresh:
        fetched = _try_upstream(client, start_date, end_date)
        if fetched is not None:
            punch_store.merge_external(fetched)
            return LogsResult(records=fetched, source=Provenance.EXTERNAL_API_FRESH)

    if local:
        return LogsResult(records=local, source=Provenance.DATABASE)

    fetched = _try_upstream(client, start_date, end_date)
    if fetched is None:
        return LogsResult(records=[], source=Provenance.NONE)

    punch_store.merge_external(fetched)
    return LogsResult(records=fetched, source=Provenance.EXTERNAL_API)


def fetch_attendance_logs(
    start_date: date,
    end_date: date,
    force_refresh: bool = False,
    client: Optional[BiometricClient] = None,
) -> LogsResult:
    # serialize now; the per-record commits below expire ORM instances
    local = [punch_store.serialize_punch(p) for p in punch_store.find_in_range(start_date, end_date)]
    log.info(
        "[attendance-logs] %s..%s: %s local punches (force_refresh=%s)",
        start_date, end_date, len(local), force_refresh,
    )

    owned = client is None and (force_refresh or not local)
    if owned:
        client = client_from_config(current_app.config)
    try:
        return _reconcile(local, start_date, end_date, force_refresh, client)
    finally:
        if owned:
            client.close()
