"""Fetch quota utilization from Anthropic's OAuth usage endpoint.

Reads the same data that Claude Code's /usage command displays:

    GET https://api.anthropic.com/api/oauth/usage

NOTE: This endpoint is not officially documented and may change without notice.
Each call either returns a :class:`UsageSnapshot` or raises a
:class:`~usage_pulse.errors.UsageError` subclass describing the failure.
"""

from __future__ import annotations

import http.client
import json
import math
import urllib.error
import urllib.request
from datetime import datetime
from typing import Any

from usage_pulse import __version__, constants
from usage_pulse.errors import (
    DecodingError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
)
from usage_pulse.models import UsageLimit, UsageSnapshot

USER_AGENT = f"{constants.APP_NAME}/{__version__}"

# snapshot field -> accepted JSON keys
_LIMIT_KEYS = {
    "five_hour": ("five_hour", "fiveHour"),
    "seven_day": ("seven_day", "sevenDay"),
    "seven_day_opus": ("seven_day_opus", "sevenDayOpus"),
    "seven_day_sonnet": ("seven_day_sonnet", "sevenDaySonnet"),
}


def _parse_dt(s: str | None) -> datetime | None:
    if not s or not isinstance(s, str):
        return None
    try:
        return datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None


def _parse_limit(raw: Any) -> UsageLimit | None:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise DecodingError(f"expected object, got {type(raw).__name__}")
    utilization = raw.get("utilization")
    if isinstance(utilization, bool) or not isinstance(utilization, (int, float)):
        raise DecodingError("missing numeric utilization")
    if not math.isfinite(utilization):
        raise DecodingError(f"non-finite utilization {utilization!r}")
    resets_at = raw["resets_at"] if "resets_at" in raw else raw.get("resetsAt")
    return UsageLimit(utilization=float(utilization), resets_at=_parse_dt(resets_at))


def parse_snapshot(data: Any) -> UsageSnapshot:
    """Build a :class:`UsageSnapshot` from a decoded JSON payload."""
    if not isinstance(data, dict):
        raise DecodingError(f"expected object, got {type(data).__name__}")

    fields: dict[str, UsageLimit | None] = {}
    for field_name, keys in _LIMIT_KEYS.items():
        raw = next((data[k] for k in keys if k in data), None)
        fields[field_name] = _parse_limit(raw)
    return UsageSnapshot(**fields)


class UsageClient:
    """Performs one authenticated GET against the usage endpoint."""

    def __init__(
        self,
        url: str = constants.USAGE_API_URL,
        timeout: float = constants.REQUEST_TIMEOUT_SECONDS,
    ) -> None:
        self.url = url
        self.timeout = timeout

    def _request(self, token: str) -> urllib.request.Request:
        return urllib.request.Request(
            self.url,
            headers={
                "Authorization": f"Bearer {token}",
                "anthropic-beta": constants.OAUTH_BETA_HEADER,
                "Accept": "application/json",
                "User-Agent": USER_AGENT,
            },
            method="GET",
        )

    def fetch(self, token: str) -> UsageSnapshot:
        """Fetch and decode the current usage snapshot."""
        try:
            with urllib.request.urlopen(self._request(token), timeout=self.timeout) as resp:
                status = resp.status
                body = resp.read()
        except urllib.error.HTTPError as exc:
            _raise_for_status(exc.code)
            raise InvalidResponseError(exc.code) from exc
        except (urllib.error.URLError, http.client.HTTPException, OSError) as exc:
            raise NetworkError(exc) from exc

        if status != 200:
            _raise_for_status(status)
            raise InvalidResponseError(status)

        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise DecodingError(exc) from exc
        return parse_snapshot(data)


def _raise_for_status(code: int) -> None:
    if code == 401:
        raise UnauthorizedError()
    if code == 429:
        raise RateLimitedError()
    if 500 <= code <= 599:
        raise ServerError(code)
