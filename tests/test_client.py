"""Tests for usage/client.py — Anthropic OAuth usage endpoint."""

from __future__ import annotations

import io
import json
import urllib.error
from unittest.mock import MagicMock, patch

import pytest

from usage_pulse import __version__
from usage_pulse.errors import (
    DecodingError,
    InvalidResponseError,
    NetworkError,
    RateLimitedError,
    ServerError,
    UnauthorizedError,
)
from usage_pulse.usage.client import UsageClient, _parse_dt, parse_snapshot

URLOPEN = "usage_pulse.usage.client.urllib.request.urlopen"


def _make_response(body: bytes, status: int = 200):
    resp = MagicMock()
    resp.status = status
    resp.read.return_value = body
    resp.__enter__ = lambda s: s
    resp.__exit__ = MagicMock(return_value=False)
    return resp


def _http_error(code: int) -> urllib.error.HTTPError:
    return urllib.error.HTTPError(
        "https://api.anthropic.com/api/oauth/usage", code, "err", {}, io.BytesIO(b"")
    )


FULL_PAYLOAD = {
    "five_hour": {"utilization": 16.0, "resets_at": "2026-02-18T16:00:00+00:00"},
    "seven_day": {"utilization": 28.0, "resets_at": "2026-02-23T04:00:00Z"},
    "seven_day_sonnet": {"utilization": 4.0, "resets_at": None},
    "seven_day_opus": None,
    "extra_usage": {"is_enabled": False},
}


class TestParseDt:
    def test_valid_iso(self):
        dt = _parse_dt("2026-02-18T16:00:00+00:00")
        assert dt is not None
        assert dt.year == 2026

    def test_zulu_suffix(self):
        dt = _parse_dt("2026-02-18T16:00:00Z")
        assert dt is not None
        assert dt.utcoffset().total_seconds() == 0

    def test_none_input(self):
        assert _parse_dt(None) is None

    def test_invalid_string(self):
        assert _parse_dt("not-a-date") is None


class TestParseSnapshot:
    def test_full_response(self):
        snap = parse_snapshot(FULL_PAYLOAD)
        assert snap.five_hour.utilization == 16.0
        assert snap.five_hour.resets_at is not None
        assert snap.seven_day.utilization == 28.0
        assert snap.seven_day_sonnet.resets_at is None
        assert snap.seven_day_opus is None

    def test_empty_object_has_no_limits(self):
        snap = parse_snapshot({})
        assert snap.five_hour is None
        assert snap.seven_day is None

    def test_camel_case_keys(self):
        snap = parse_snapshot(
            {"fiveHour": {"utilization": 50, "resetsAt": "2026-02-18T16:00:00Z"},
             "sevenDayOpus": {"utilization": 7}}
        )
        assert snap.five_hour.utilization == 50.0
        assert snap.five_hour.resets_at is not None
        assert snap.seven_day_opus.utilization == 7.0

    def test_non_object_payload(self):
        with pytest.raises(DecodingError):
            parse_snapshot([1, 2, 3])

    def test_missing_utilization(self):
        with pytest.raises(DecodingError):
            parse_snapshot({"five_hour": {"resets_at": None}})

    def test_string_utilization(self):
        with pytest.raises(DecodingError):
            parse_snapshot({"five_hour": {"utilization": "high"}})

    @pytest.mark.parametrize("literal", ["NaN", "Infinity", "-Infinity"])
    def test_non_finite_utilization(self, literal):
        payload = json.loads('{"five_hour": {"utilization": %s, "resets_at": null}}' % literal)
        with pytest.raises(DecodingError):
            parse_snapshot(payload)


class TestFetch:
    def test_parses_full_response(self):
        with patch(URLOPEN, return_value=_make_response(json.dumps(FULL_PAYLOAD).encode())):
            snap = UsageClient().fetch("tok")
        assert snap.five_hour.utilization == 16.0

    def test_request_headers(self):
        with patch(URLOPEN, return_value=_make_response(b"{}")) as mock_open:
            UsageClient().fetch("tok")
        req = mock_open.call_args.args[0]
        assert req.get_method() == "GET"
        assert req.get_header("Authorization") == "Bearer tok"
        assert req.get_header("Anthropic-beta") == "oauth-2025-04-20"
        assert req.get_header("User-agent") == f"usage-pulse/{__version__}"
        assert mock_open.call_args.kwargs["timeout"] == 30

    @pytest.mark.parametrize(
        "code, error",
        [
            (401, UnauthorizedError),
            (429, RateLimitedError),
            (500, ServerError),
            (599, ServerError),
            (404, InvalidResponseError),
            (403, InvalidResponseError),
        ],
    )
    def test_status_mapping(self, code, error):
        with patch(URLOPEN, side_effect=_http_error(code)):
            with pytest.raises(error):
                UsageClient().fetch("tok")

    def test_server_error_keeps_code(self):
        with patch(URLOPEN, side_effect=_http_error(503)):
            with pytest.raises(ServerError) as info:
                UsageClient().fetch("tok")
        assert info.value.code == 503

    def test_non_200_success_is_invalid(self):
        with patch(URLOPEN, return_value=_make_response(b"", status=204)):
            with pytest.raises(InvalidResponseError):
                UsageClient().fetch("tok")

    def test_url_error_is_network_error(self):
        with patch(URLOPEN, side_effect=urllib.error.URLError("name resolution failed")):
            with pytest.raises(NetworkError):
                UsageClient().fetch("tok")

    def test_timeout_is_network_error(self):
        with patch(URLOPEN, side_effect=TimeoutError("timed out")):
            with pytest.raises(NetworkError):
                UsageClient().fetch("tok")

    def test_connection_reset_is_network_error(self):
        with patch(URLOPEN, side_effect=ConnectionResetError()):
            with pytest.raises(NetworkError):
                UsageClient().fetch("tok")

    def test_invalid_json_is_decoding_error(self):
        with patch(URLOPEN, return_value=_make_response(b"<html>")):
            with pytest.raises(DecodingError):
                UsageClient().fetch("tok")

    def test_non_finite_utilization_body_is_decoding_error(self):
        body = b'{"five_hour": {"utilization": Infinity, "resets_at": null}}'
        with patch(URLOPEN, return_value=_make_response(body)):
            with pytest.raises(DecodingError):
                UsageClient().fetch("tok")
