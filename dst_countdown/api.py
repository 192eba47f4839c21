from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Any, Callable

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .calculator import compute_window
from .config import ApiMode, Settings, configure_logging, get_settings
from .countries import CountryTable, default_table
from .errors import UpstreamFetchFailure
from .govuk import CachedPage, compute_window_from_page, fetch_page, refresh_page
from .models import (
    CountryInfo,
    DstWindow,
    TransitionEvent,
    TransitionKind,
    to_epoch_ms,
)
from .rules import compute_uk_window

logger = logging.getLogger(__name__)

COUNTRY_HEADER = "x-vercel-ip-country"
TIMEZONE_HEADER = "x-vercel-ip-timezone"

# Country-dependent answers change with the caller; fixed-rule ones do not
CACHE_CONTROL_BY_COUNTRY = "public, max-age=3600, s-maxage=3600, stale-while-revalidate=7200"
CACHE_CONTROL_FIXED_RULE = "public, max-age=86400"

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

CALCULATION_ERROR = "Failed to calculate DST information"
FETCH_ERROR = "Failed to fetch DST information"

UK_DESCRIPTIONS = {
    TransitionKind.SPRING_FORWARD: "Until clocks go forward (BST begins)",
    TransitionKind.FALL_BACK: "Until clocks go back (GMT begins)",
}

router = APIRouter()


def _event_summary(event: TransitionEvent) -> dict[str, Any]:
    return {
        "type": event.kind.value,
        "timestamp": event.timestamp_ms,
        "date": event.utc_iso,
    }


def build_payload(window: DstWindow) -> dict[str, Any]:
    current_time = window.reference_instant
    payload: dict[str, Any] = {
        "type": None,
        "targetDate": None,
        "timestamp": None,
        "localTime": None,
        "millisecondsRemaining": None,
        "currentTime": to_epoch_ms(current_time),
        "previousEvent": None,
        "progressPercent": 0,
    }
    if window.next is None:
        payload["hasDST"] = False
        return payload

    payload.update(
        type=window.next.kind.value,
        targetDate=window.next.utc_iso,
        timestamp=window.next.timestamp_ms,
        localTime=window.next.local_iso,
        millisecondsRemaining=window.milliseconds_remaining,
        previousEvent=_event_summary(window.previous) if window.previous else None,
        progressPercent=window.progress_percent,
    )
    return payload


def _country_summary(country: CountryInfo, **extra: Any) -> dict[str, Any]:
    return {"code": country.code, "name": country.name, "flag": country.flag, **extra}


def _json(payload: dict[str, Any], cache_control: str, status_code: int = 200):
    return JSONResponse(
        content=payload,
        status_code=status_code,
        headers={"Cache-Control": cache_control},
    )


def _error(message: str) -> JSONResponse:
    return _json({"error": message}, "no-store", status_code=500)


def _international_payload(
    request: Request,
    settings: Settings,
    now: datetime,
    country: str | None,
    tz: str | None,
) -> dict[str, Any]:
    table: CountryTable = request.app.state.countries
    resolution = table.resolve(
        country,
        request.headers.get(COUNTRY_HEADER),
        request.headers.get(TIMEZONE_HEADER),
    )
    shown = resolution.country
    if resolution.fallback is None:
        timezone_name = tz or shown.timezone
    else:
        timezone_name = resolution.effective.timezone

    window = compute_window(
        timezone_name,
        now,
        settings.SEARCH_HORIZON_YEARS,
        settings.TRANSITION_POLICY,
    )
    payload = build_payload(window)
    if resolution.fallback is None:
        payload["country"] = _country_summary(
            shown, hasDST=True, southernHemisphere=shown.southern_hemisphere
        )
    else:
        payload["country"] = _country_summary(shown, hasDST=False)
        payload["fallbackCountry"] = _country_summary(resolution.fallback)
    payload.update(
        timezone=timezone_name,
        detectedCountry=resolution.detected_country,
        detectedTimezone=resolution.detected_timezone,
    )
    return payload


def _uk_payload(window: DstWindow) -> dict[str, Any]:
    payload = build_payload(window)
    if window.next is not None:
        payload["description"] = UK_DESCRIPTIONS[window.next.kind]
    return payload


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/api/dst")
def get_dst(
    request: Request,
    country: str | None = Query(None),
    tz: str | None = Query(None),
):
    state = request.app.state
    settings: Settings = state.settings
    now = settings.now()

    try:
        if settings.MODE is ApiMode.UK:
            window = compute_uk_window(now, settings.SEARCH_HORIZON_YEARS)
            return _json(_uk_payload(window), CACHE_CONTROL_FIXED_RULE)

        if settings.MODE is ApiMode.GOVUK:
            page: CachedPage = refresh_page(
                state.govuk_page,
                now,
                settings.GOVUK_CACHE_TTL_S,
                partial(state.fetch_page, now=now),
            )
            state.govuk_page = page
            window = compute_window_from_page(page, now)
            return _json(_uk_payload(window), CACHE_CONTROL_FIXED_RULE)

        payload = _international_payload(request, settings, now, country, tz)
        return _json(payload, CACHE_CONTROL_BY_COUNTRY)
    except UpstreamFetchFailure:
        logger.exception("DST API upstream error")
        return _error(FETCH_ERROR)
    except Exception:
        logger.exception("DST API error (country=%r, tz=%r)", country, tz)
        return _error(CALCULATION_ERROR)


def install_security_headers(app: FastAPI) -> None:
    @app.middleware("http")
    async def _mw(request, call_next):  # type: ignore[no-untyped-def]
        resp = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            resp.headers[name] = value
        return resp


def create_app(
    settings: Settings | None = None,
    countries: CountryTable | None = None,
    fetch: Callable[..., CachedPage] | None = None,
) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title="DST Countdown")
    app.state.settings = settings
    app.state.countries = (countries or default_table()).with_default(
        settings.DEFAULT_COUNTRY
    )
    app.state.govuk_page = None
    app.state.fetch_page = fetch or partial(
        fetch_page, settings.GOVUK_URL, settings.GOVUK_TIMEOUT_S
    )
    install_security_headers(app)
    app.include_router(router)
    return app
