"""
Transition dates published on the GOV.UK "When do the clocks change?" page.

The page lists, per year, the date the clocks go forward (March) and back
(October). Both happen at 01:00 GMT, so only the dates are read from the page.
Pages are held in a `CachedPage` value owned by the caller; nothing here keeps
module-level state.
"""

import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

import requests
from bs4 import BeautifulSoup

from .calculator import as_utc, select_window
from .errors import UpstreamFetchFailure
from .models import DstWindow, TransitionEvent, TransitionKind
from .rules import (
    BST_OFFSET_SECS,
    GMT_OFFSET_SECS,
    UK_TIMEZONE_NAME,
    compute_uk_window,
)

logger = logging.getLogger(__name__)

GOVUK_URL = "https://www.gov.uk/when-do-the-clocks-change"
USER_AGENT = "dst-countdown/1.0"

_DATE_RE = re.compile(r"(\d{1,2})\s+(March|October)(?:\s+(\d{4}))?", re.IGNORECASE)
_YEAR_RE = re.compile(r"\d{4}")
_MONTHS = {"march": 3, "october": 10}


@dataclass(frozen=True)
class CachedPage:
    html: str
    fetched_at: datetime  # tz-aware UTC

    def age(self, now: datetime) -> timedelta:
        return as_utc(now) - self.fetched_at

    def is_fresh(self, now: datetime, ttl_secs: float) -> bool:
        return self.age(now) < timedelta(seconds=ttl_secs)


def fetch_page(
    url: str = GOVUK_URL,
    timeout: float = 10.0,
    session: requests.Session | None = None,
    now: datetime | None = None,
) -> CachedPage:
    http = session if session is not None else requests
    try:
        response = http.get(url, timeout=timeout, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except requests.RequestException as exc:
        raise UpstreamFetchFailure(url, str(exc)) from exc

    logger.info("Fetched %s (%d bytes)", url, len(response.text))
    return CachedPage(response.text, as_utc(now))


def refresh_page(
    cache: CachedPage | None,
    now: datetime,
    ttl_secs: float,
    fetch: Callable[[], CachedPage],
) -> CachedPage:
    """
    Return `cache` while it is fresh, otherwise fetch a new page. A failed
    fetch falls back to the stale page when there is one.
    """
    if cache is not None and cache.is_fresh(now, ttl_secs):
        return cache

    try:
        return fetch()
    except UpstreamFetchFailure:
        if cache is None:
            raise
        logger.warning(
            "Upstream fetch failed; serving page cached %s ago",
            cache.age(now),
            exc_info=True,
        )
        return cache


def _event(year: int, month: int, day: int) -> TransitionEvent:
    instant = datetime(year, month, day, 1, tzinfo=timezone.utc)
    if month == 3:
        return TransitionEvent(
            TransitionKind.SPRING_FORWARD, instant, GMT_OFFSET_SECS, BST_OFFSET_SECS
        )
    return TransitionEvent(
        TransitionKind.FALL_BACK, instant, BST_OFFSET_SECS, GMT_OFFSET_SECS
    )


def _events_from_text(text: str, default_year: int) -> list[TransitionEvent]:
    events: list[TransitionEvent] = []
    for match in _DATE_RE.finditer(text):
        day, month_name, year = match.groups()
        try:
            events.append(
                _event(
                    int(year) if year else default_year,
                    _MONTHS[month_name.lower()],
                    int(day),
                )
            )
        except ValueError:
            logger.debug("Skipping impossible date %r", match.group(0))
    return events


def parse_transitions(html: str, reference_year: int) -> list[TransitionEvent]:
    """
    Transition events listed on the page, ascending and de-duplicated.

    Table rows of the form ``2025 | 30 March | 26 October`` are preferred.
    If the page has no such rows, dates anywhere in the text are used, with
    `reference_year` for dates that carry no year.
    """
    soup = BeautifulSoup(html, "html.parser")

    events: list[TransitionEvent] = []
    for row in soup.find_all("tr"):
        cells = [c.get_text(" ", strip=True) for c in row.find_all(["th", "td"])]
        if len(cells) < 2 or not _YEAR_RE.fullmatch(cells[0]):
            continue
        year = int(cells[0])
        for cell in cells[1:]:
            events.extend(_events_from_text(cell, year))

    if not events:
        events = _events_from_text(soup.get_text(" "), reference_year)

    unique = {event.instant: event for event in events}
    return [unique[instant] for instant in sorted(unique)]


def compute_window_from_page(
    page: CachedPage, reference_instant: datetime | None = None
) -> DstWindow:
    reference = as_utc(reference_instant)
    events = parse_transitions(page.html, reference.year)
    window = select_window(UK_TIMEZONE_NAME, events, reference)
    if window.next is None:
        logger.warning(
            "No upcoming transition on page fetched at %s; using the statutory rule",
            page.fetched_at.isoformat(),
        )
        return compute_uk_window(reference)
    return window
