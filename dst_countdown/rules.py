import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .calculator import DEFAULT_SEARCH_HORIZON_YEARS, as_utc, scan_years, select_window
from .models import DstWindow, TransitionEvent, TransitionKind

SUNDAY = calendar.SUNDAY

UK_TIMEZONE_NAME = "Europe/London"
GMT_OFFSET_SECS = 0
BST_OFFSET_SECS = 3600


@dataclass(frozen=True)
class MonthWeekdayRule:
    """
    The `week`-th `weekday` of `month` at a time of day. Week 5 means the last
    occurrence in the month. Weekdays follow Python (Monday=0 ... Sunday=6).
    """

    month: int
    week: int  # 1..5 (5 = last)
    weekday: int
    hour: int
    minute: int = 0
    second: int = 0

    def to_datetime(self, year: int) -> datetime:
        if self.week < 5:
            first_of_month = datetime(year, self.month, 1)
            delta = (self.weekday - first_of_month.weekday()) % 7
            target = first_of_month + timedelta(days=delta + 7 * (self.week - 1))
        else:
            days_in_month = calendar.monthrange(year, self.month)[1]
            last_of_month = datetime(year, self.month, days_in_month)
            back = (last_of_month.weekday() - self.weekday) % 7
            target = last_of_month - timedelta(days=back)

        return target.replace(hour=self.hour, minute=self.minute, second=self.second)

    def to_utc(self, year: int) -> datetime:
        return self.to_datetime(year).replace(tzinfo=timezone.utc)


# Summer Time Order 2002: 01:00 GMT on the last Sunday of March and October
UK_SPRING_FORWARD = MonthWeekdayRule(3, 5, SUNDAY, 1)
UK_FALL_BACK = MonthWeekdayRule(10, 5, SUNDAY, 1)


def uk_transitions(year: int) -> list[TransitionEvent]:
    return [
        TransitionEvent(
            TransitionKind.SPRING_FORWARD,
            UK_SPRING_FORWARD.to_utc(year),
            GMT_OFFSET_SECS,
            BST_OFFSET_SECS,
        ),
        TransitionEvent(
            TransitionKind.FALL_BACK,
            UK_FALL_BACK.to_utc(year),
            BST_OFFSET_SECS,
            GMT_OFFSET_SECS,
        ),
    ]


def compute_uk_window(
    reference_instant: datetime | None = None,
    search_horizon_years: int = DEFAULT_SEARCH_HORIZON_YEARS,
) -> DstWindow:
    """
    UK window from the statutory rule instead of an offset scan. Gives the
    same instants as `compute_window("Europe/London", ...)`.
    """
    reference = as_utc(reference_instant)
    events: list[TransitionEvent] = []
    for year in scan_years(reference.year, search_horizon_years):
        events.extend(uk_transitions(year))
    return select_window(UK_TIMEZONE_NAME, events, reference)
