import calendar
import logging
from datetime import datetime, timezone
from enum import Enum
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .errors import CalendarComputationFailure, InvalidTimezone
from .models import DstWindow, TransitionEvent, TransitionKind

logger = logging.getLogger(__name__)

# Local wall hour sampled each day, after the 00:00-02:00 switch most zones use
SAMPLE_HOUR = 3
FIXED_TRANSITION_HOUR_UTC = 1
DEFAULT_SEARCH_HORIZON_YEARS = 2


class TransitionPolicy(Enum):
    """
    How the instant of a transition is resolved once the day is known.
    """

    EXACT = "exact"
    FIXED_HOUR = "fixed_hour"


def load_zone(timezone_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone_name)
    except (ZoneInfoNotFoundError, ValueError, TypeError, OSError) as exc:
        raise InvalidTimezone(timezone_name) from exc


def as_utc(dt: datetime | None) -> datetime:
    """
    Naive datetimes are interpreted as UTC; aware ones are converted.
    """
    if dt is None:
        return datetime.now(timezone.utc)
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _offset_secs(zone: ZoneInfo, dt_utc: datetime) -> int:
    offset = dt_utc.astimezone(zone).utcoffset()
    return int(offset.total_seconds()) if offset is not None else 0


def _sample_instant(zone: ZoneInfo, year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, SAMPLE_HOUR, tzinfo=zone).astimezone(
        timezone.utc
    )


def _bisect_transition(
    zone: ZoneInfo, low: datetime, high: datetime, offset_before_secs: int
) -> datetime:
    """
    First whole second in (low, high] at which the offset no longer equals
    `offset_before_secs`.
    """
    low_ts = int(low.timestamp())
    high_ts = int(high.timestamp())
    while low_ts + 1 < high_ts:
        mid_ts = (low_ts + high_ts) // 2
        mid = datetime.fromtimestamp(mid_ts, tz=timezone.utc)
        if _offset_secs(zone, mid) == offset_before_secs:
            low_ts = mid_ts
        else:
            high_ts = mid_ts
    return datetime.fromtimestamp(high_ts, tz=timezone.utc)


def _scan_year(
    zone: ZoneInfo, year: int, policy: TransitionPolicy
) -> list[TransitionEvent]:
    previous_sample = _sample_instant(zone, year, 1, 1)
    baseline = _offset_secs(zone, previous_sample)
    events: list[TransitionEvent] = []

    for month in range(1, 13):
        days_in_month = calendar.monthrange(year, month)[1]
        for day in range(1, days_in_month + 1):
            sample = _sample_instant(zone, year, month, day)
            offset = _offset_secs(zone, sample)
            if offset == baseline:
                previous_sample = sample
                continue

            if policy is TransitionPolicy.EXACT:
                instant = _bisect_transition(zone, previous_sample, sample, baseline)
            else:
                instant = datetime(
                    year, month, day, FIXED_TRANSITION_HOUR_UTC, tzinfo=timezone.utc
                )
            event = TransitionEvent(
                kind=TransitionKind.from_offsets(baseline, offset),
                instant=instant,
                offset_before_secs=baseline,
                offset_after_secs=offset,
            )
            logger.debug(
                "%s: %s at %s (%+d -> %+d)",
                zone.key,
                event.kind.value,
                event.utc_iso,
                baseline,
                offset,
            )
            events.append(event)
            baseline = offset
            previous_sample = sample
            # At most one transition per month
            break

    return events


def find_transitions(
    timezone_name: str, year: int, policy: TransitionPolicy = TransitionPolicy.EXACT
) -> list[TransitionEvent]:
    """
    Scan `year` day by day for civil offset changes in `timezone_name`.

    Each day is sampled at 03:00 local. When the sampled offset differs from
    the running baseline the change is recorded and the rest of the month is
    skipped. With ``TransitionPolicy.EXACT`` the instant is bisected to the
    second between the two samples; ``TransitionPolicy.FIXED_HOUR`` pins it
    to 01:00 UTC on the detection date, which is only right for zones that
    switch when the UK does.
    """
    zone = load_zone(timezone_name)
    try:
        events = _scan_year(zone, year, policy)
    except (ValueError, OverflowError) as exc:
        raise CalendarComputationFailure(
            f"Could not scan {timezone_name!r} for year {year}: {exc}"
        ) from exc
    return sorted(events, key=lambda e: e.instant)


def select_window(
    timezone_name: str, events: list[TransitionEvent], reference_instant: datetime
) -> DstWindow:
    reference = as_utc(reference_instant)
    ordered = sorted(events, key=lambda e: e.instant)

    for index, event in enumerate(ordered):
        if event.instant > reference:
            return DstWindow(
                timezone_name,
                reference,
                next=event,
                previous=ordered[index - 1] if index > 0 else None,
            )

    return DstWindow(timezone_name, reference)


def scan_years(reference_year: int, search_horizon_years: int) -> range:
    """
    Years scanned for a query: the reference year, the following years up to
    the horizon, and the preceding year so a previous transition is available
    early in the reference year.
    """
    if search_horizon_years < 1:
        raise ValueError(
            f"search_horizon_years must be at least 1, got {search_horizon_years}"
        )
    return range(reference_year - 1, reference_year + search_horizon_years)


def compute_window(
    timezone_name: str,
    reference_instant: datetime | None = None,
    search_horizon_years: int = DEFAULT_SEARCH_HORIZON_YEARS,
    policy: TransitionPolicy = TransitionPolicy.EXACT,
) -> DstWindow:
    """
    Previous and next DST transitions around `reference_instant` (now if
    omitted) in `timezone_name`. Zones with a fixed offset over the scanned
    years produce a window without transitions.
    """
    zone = load_zone(timezone_name)
    reference = as_utc(reference_instant)
    try:
        reference_year = reference.astimezone(zone).year
    except OverflowError as exc:
        raise CalendarComputationFailure(str(exc)) from exc

    events: list[TransitionEvent] = []
    for year in scan_years(reference_year, search_horizon_years):
        events.extend(find_transitions(timezone_name, year, policy))

    window = select_window(timezone_name, events, reference)
    if window.next is None:
        logger.debug("%s: no offset change in scanned years", timezone_name)
    return window
