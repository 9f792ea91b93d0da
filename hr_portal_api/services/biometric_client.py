# hr_portal_api/services/biometric_client.py
"""
HTTP client for the third-party biometric attendance backend.

The upstream is known to answer HTTP 200 with a Java/SQL stack trace as the
body when its own database query fails, so every response body goes through
`looks_like_upstream_error` before it is parsed.

TLS verification is configured per client instance. Turning it off for the
attendance upstream never touches other outbound calls.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, List, Optional

import requests

from hr_portal_api.common.dates import format_api_date

log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "HR-Portal/1.0"
DEFAULT_TIMEOUT = 5.0

# substrings that mark a "successful" response as an upstream failure
ERROR_MARKERS = ("java.sql.", "Exception")


class UpstreamError(Exception):
    """The biometric API was unreachable, slow, or answered with an error."""

    def __init__(self, message: str, status: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.body = body


def looks_like_upstream_error(body: Optional[str]) -> bool:
    if not body:
        return False
    return any(marker in body for marker in ERROR_MARKERS)


def extract_records(payload: Any) -> List[Any]:
    """Accept a bare JSON array or an object carrying a `data` array."""
    if isinstance(payload, list):
        return payload
    if isinstance(payload, dict) and isinstance(payload.get("data"), list):
        return payload["data"]
    return []


class BiometricClient:
    def __init__(
        self,
        logs_url: str,
        users_url: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
        user_agent: str = DEFAULT_USER_AGENT,
        session: Optional[requests.Session] = None,
    ):
        self.logs_url = logs_url
        self.users_url = users_url
        self.timeout = timeout
        self.verify_tls = verify_tls
        self.user_agent = user_agent
        self.session = session or requests.Session()

    def _headers(self):
        return {
            "Content-Type": "application/json",
            "User-Agent": self.user_agent,
        }

    def _decode(self, resp: requests.Response) -> Any:
        if not resp.ok:
            raise UpstreamError(
                f"upstream returned status {resp.status_code}",
                status=resp.status_code,
                body=resp.text[:500],
            )
        text = resp.text
        if looks_like_upstream_error(text):
            raise UpstreamError(
                "upstream returned an error payload",
                status=resp.status_code,
                body=text[:500],
            )
        try:
            return resp.json()
        except ValueError:
            raise UpstreamError(
                "upstream returned invalid JSON",
                status=resp.status_code,
                body=text[:500],
            )

    def _request(self, method: str, url: str, **kw) -> Any:
        try:
            resp = self.session.request(
                method,
                url,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_tls,
                **kw,
            )
        except requests.RequestException as e:
            raise UpstreamError(f"upstream request failed: {e}") from e
        return self._decode(resp)

    def fetch_logs(self, start: date, end: date) -> List[Any]:
        """POST the day range (DD/MM/YYYY) and return the punch objects."""
        body = {"start_date": format_api_date(start), "end_date": format_api_date(end)}
        log.debug("[biometric] fetching logs %s", body)
        payload = self._request("POST", self.logs_url, json=body)
        return extract_records(payload)

    def fetch_users(self) -> List[Any]:
        if not self.users_url:
            raise UpstreamError("biometric users endpoint is not configured")
        payload = self._request("GET", self.users_url)
        return extract_records(payload)

    def close(self):
        self.session.close()


def client_from_config(config, timeout: Optional[float] = None) -> BiometricClient:
    """Build a client from Flask config (BIOMETRIC_* keys)."""
    return BiometricClient(
        logs_url=config["BIOMETRIC_LOGS_URL"],
        users_url=config.get("BIOMETRIC_USERS_URL"),
        timeout=timeout if timeout is not None else config.get("BIOMETRIC_TIMEOUT", DEFAULT_TIMEOUT),
        verify_tls=config.get("BIOMETRIC_VERIFY_TLS", True),
        user_agent=config.get("BIOMETRIC_USER_AGENT", DEFAULT_USER_AGENT),
    )
