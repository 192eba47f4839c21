from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from dst_countdown.api import build_payload, create_app
from dst_countdown.calculator import compute_window
from dst_countdown.config import Settings
from dst_countdown.errors import UpstreamFetchFailure
from dst_countdown.govuk import CachedPage
from dst_countdown.models import to_epoch_ms

NOW = datetime(2025, 9, 20, 14, tzinfo=timezone.utc)
OCT_26_2025_MS = 1761440400000

GOVUK_HTML = """
<table>
  <tr><th>Year</th><th>Clocks go forward</th><th>Clocks go back</th></tr>
  <tr><td>2025</td><td>30 March</td><td>26 October</td></tr>
  <tr><td>2026</td><td>29 March</td><td>25 October</td></tr>
</table>
"""


def _client(**overrides) -> TestClient:
    fetch = overrides.pop("fetch", None)
    settings = Settings(FAKE_NOW=NOW, **overrides)
    return TestClient(create_app(settings, fetch=fetch))


def _assert_security_headers(response):
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"


def test_default_country():
    response = _client().get("/api/dst")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    assert "max-age=3600" in response.headers["Cache-Control"]
    _assert_security_headers(response)

    body = response.json()
    assert body["type"] == "backward"
    assert body["targetDate"] == "2025-10-26T01:00:00.000Z"
    assert body["timestamp"] == OCT_26_2025_MS
    assert body["currentTime"] == to_epoch_ms(NOW)
    assert body["millisecondsRemaining"] == OCT_26_2025_MS - to_epoch_ms(NOW)
    assert body["previousEvent"] == {
        "type": "forward",
        "timestamp": 1743296400000,
        "date": "2025-03-30T01:00:00.000Z",
    }
    assert body["progressPercent"] == pytest.approx(83.115, abs=0.01)
    assert body["country"] == {
        "code": "GB",
        "name": "United Kingdom",
        "flag": "🇬🇧",
        "hasDST": True,
        "southernHemisphere": False,
    }
    assert body["timezone"] == "Europe/London"
    assert body["detectedCountry"] is None
    assert body["detectedTimezone"] is None
    assert "fallbackCountry" not in body


def test_explicit_country_overrides_detected_header():
    response = _client().get(
        "/api/dst",
        params={"country": "se"},
        headers={"x-vercel-ip-country": "US", "x-vercel-ip-timezone": "America/Chicago"},
    )

    body = response.json()
    assert body["country"]["code"] == "SE"
    assert body["timezone"] == "Europe/Stockholm"
    assert body["detectedCountry"] == "US"
    assert body["detectedTimezone"] == "America/Chicago"
    assert body["targetDate"] == "2025-10-26T01:00:00.000Z"


def test_detected_country_used_without_explicit():
    response = _client().get("/api/dst", headers={"x-vercel-ip-country": "US"})

    body = response.json()
    assert body["country"]["code"] == "US"
    assert body["timezone"] == "America/New_York"
    assert body["targetDate"] == "2025-11-02T06:00:00.000Z"


def test_unknown_country_falls_back_to_default():
    body = _client().get("/api/dst", params={"country": "XX"}).json()

    assert body["country"]["code"] == "GB"


def test_long_unknown_country_falls_back_to_default():
    response = _client().get("/api/dst", params={"country": "UNITEDKINGDOM"})

    assert response.status_code == 200
    assert response.json()["country"]["code"] == "GB"
    assert response.json()["targetDate"] == "2025-10-26T01:00:00.000Z"


def test_southern_hemisphere_country():
    body = _client().get("/api/dst", params={"country": "AU"}).json()

    assert body["country"]["southernHemisphere"] is True
    assert body["type"] == "forward"
    assert body["targetDate"] == "2025-10-04T16:00:00.000Z"


def test_no_dst_country_gets_default_window():
    body = _client().get("/api/dst", params={"country": "JP"}).json()

    assert body["country"] == {
        "code": "JP",
        "name": "Japan",
        "flag": "🇯🇵",
        "hasDST": False,
    }
    assert body["fallbackCountry"]["code"] == "GB"
    assert body["timezone"] == "Europe/London"
    assert body["type"] == "backward"


def test_timezone_override_without_dst():
    body = _client().get("/api/dst", params={"tz": "Asia/Tokyo"}).json()

    assert body["timezone"] == "Asia/Tokyo"
    assert body["type"] is None
    assert body["targetDate"] is None
    assert body["timestamp"] is None
    assert body["millisecondsRemaining"] is None
    assert body["previousEvent"] is None
    assert body["progressPercent"] == 0
    assert body["hasDST"] is False


def test_invalid_timezone_is_a_generic_500():
    response = _client().get("/api/dst", params={"tz": "Not/AZone"})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to calculate DST information"}
    assert response.headers["Cache-Control"] == "no-store"
    _assert_security_headers(response)


def test_long_invalid_timezone_is_a_generic_500():
    response = _client().get("/api/dst", params={"tz": "X/" + "a" * 70})

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to calculate DST information"}


def test_uk_mode():
    response = _client(MODE="uk").get("/api/dst", params={"country": "SE"})

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "public, max-age=86400"
    body = response.json()
    assert body["type"] == "backward"
    assert body["timestamp"] == OCT_26_2025_MS
    assert body["description"] == "Until clocks go back (GMT begins)"
    assert "country" not in body


def test_govuk_mode_caches_page():
    calls = []

    def fetch(now=None):
        calls.append(now)
        return CachedPage(GOVUK_HTML, now)

    client = _client(MODE="govuk", fetch=fetch)
    first = client.get("/api/dst")
    second = client.get("/api/dst")

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()
    assert first.json()["timestamp"] == OCT_26_2025_MS
    assert calls == [NOW]


def test_govuk_mode_upstream_failure():
    def fetch(now=None):
        raise UpstreamFetchFailure("https://example.invalid", "timed out")

    response = _client(MODE="govuk", fetch=fetch).get("/api/dst")

    assert response.status_code == 500
    assert response.json() == {"error": "Failed to fetch DST information"}


def test_health():
    response = _client().get("/health")

    assert response.json() == {"status": "ok"}
    _assert_security_headers(response)


def test_build_payload_matches_window():
    window = compute_window("Europe/London", NOW)

    payload = build_payload(window)

    assert payload["localTime"] == "2025-10-26T01:00:00.000+00:00"
    assert payload["progressPercent"] == window.progress_percent
    assert "hasDST" not in payload
