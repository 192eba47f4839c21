import math
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum

from .calculator import as_utc
from .models import DstWindow, TransitionKind

AVERAGE_MONTH_SECS = 30.44 * 24 * 60 * 60
WEEK_SECS = 7 * 24 * 60 * 60
DAY_SECS = 24 * 60 * 60
HOUR_SECS = 60 * 60
MINUTE_SECS = 60

PROGRESS_BAR_WIDTH = 30


class TimeFormat(Enum):
    SECONDS = "seconds"
    FULL = "full"


class Mood(Enum):
    PLAIN = "plain"
    EMOTIONAL = "emotional"


@dataclass(frozen=True)
class RenderSettings:
    time_format: TimeFormat = TimeFormat.SECONDS
    mood: Mood = Mood.PLAIN


@dataclass(frozen=True)
class CountdownCopy:
    meta_label: str
    main_title: str
    unit_detail: str
    target_date_label: str
    event_type_label: str
    event_type_forward: str
    event_type_backward: str
    description_forward: str
    description_backward: str
    prev_label_to_standard: str
    next_label_to_standard: str
    prev_label_to_summer: str
    next_label_to_summer: str
    no_dst: str


PLAIN_COPY = CountdownCopy(
    meta_label="Time Remaining Until",
    main_title="Daylight Saving Time",
    unit_detail="until clocks change",
    target_date_label="Target Date",
    event_type_label="Event",
    event_type_forward="Clocks Forward",
    event_type_backward="Clocks Back",
    description_forward="Until clocks go forward",
    description_backward="Until clocks go back",
    prev_label_to_standard="Summer time",
    next_label_to_standard="Standard time",
    prev_label_to_summer="Standard time",
    next_label_to_summer="Summer time",
    no_dst="This timezone does not observe daylight saving time",
)

EMOTIONAL_COPY = CountdownCopy(
    meta_label="How Much Longer Must I Endure",
    main_title="This Wretched Sunless Void",
    unit_detail="of this soul-crushing darkness",
    target_date_label="My Only Hope",
    event_type_label="The Prophecy",
    event_type_forward="Light Returns To This Forsaken Land",
    event_type_backward="Descent Into The Abyss",
    description_forward="Until blessed daylight graces my miserable existence once more",
    description_backward="Until darkness consumes what remains of my will to live",
    prev_label_to_standard="The Before Times",
    next_label_to_standard="Eternal Night",
    prev_label_to_summer="The Darkness",
    next_label_to_summer="Salvation",
    no_dst="The clocks never change here. There is no hope, and no despair",
)


def copy_for(mood: Mood) -> CountdownCopy:
    return EMOTIONAL_COPY if mood is Mood.EMOTIONAL else PLAIN_COPY


@dataclass(frozen=True)
class CountdownParts:
    months: int
    weeks: int
    days: int
    hours: int
    minutes: int
    seconds: float

    @classmethod
    def from_milliseconds(cls, milliseconds: int) -> "CountdownParts":
        total = max(0, milliseconds) / 1000
        return cls(
            months=math.floor(total / AVERAGE_MONTH_SECS),
            weeks=math.floor((total % AVERAGE_MONTH_SECS) / WEEK_SECS),
            days=math.floor((total % WEEK_SECS) / DAY_SECS),
            hours=math.floor((total % DAY_SECS) / HOUR_SECS),
            minutes=math.floor((total % HOUR_SECS) / MINUTE_SECS),
            seconds=total % MINUTE_SECS,
        )

    def __str__(self) -> str:
        return (
            f"{self.months}mo {self.weeks}w {self.days}d "
            f"{self.hours}h {self.minutes}m {self.seconds:.2f}s"
        )


def format_as_seconds(milliseconds: int) -> str:
    """Seconds with thousands separators and two truncated decimals."""
    milliseconds = max(0, milliseconds)
    whole, rest = divmod(milliseconds, 1000)
    return f"{whole:,}.{rest // 10:02d}"


def format_countdown(milliseconds: int, time_format: TimeFormat) -> str:
    if time_format is TimeFormat.FULL:
        return str(CountdownParts.from_milliseconds(milliseconds))
    return format_as_seconds(milliseconds)


def progress_bar(percent: float, width: int = PROGRESS_BAR_WIDTH) -> str:
    filled = round(width * min(100.0, max(0.0, percent)) / 100)
    return "[" + "#" * filled + "-" * (width - filled) + f"] {percent:5.1f}%"


def format_target_date(dt: datetime) -> str:
    return dt.strftime("%A %d %B %Y, %H:%M %Z").strip()


def render(
    window: DstWindow, now: datetime | None = None, settings: RenderSettings | None = None
) -> list[str]:
    """
    Lines of a terminal countdown for `window` as seen at `now`.
    """
    settings = settings or RenderSettings()
    copy = copy_for(settings.mood)
    lines = [copy.meta_label, copy.main_title, ""]

    if window.next is None:
        lines.append(copy.no_dst)
        return lines

    if now is not None:
        window = replace(window, reference_instant=as_utc(now))
    remaining_ms = window.milliseconds_remaining
    is_forward = window.next.kind is TransitionKind.SPRING_FORWARD

    countdown = format_countdown(remaining_ms, settings.time_format)
    if settings.time_format is TimeFormat.SECONDS:
        countdown = f"{countdown} seconds"
    lines.append(countdown)
    lines.append(copy.description_forward if is_forward else copy.description_backward)
    lines.append("")
    lines.append(
        f"{copy.event_type_label}: "
        f"{copy.event_type_forward if is_forward else copy.event_type_backward}"
    )
    lines.append(
        f"{copy.target_date_label}: {format_target_date(window.next.local_time)}"
    )

    if window.previous is not None:
        if is_forward:
            before, after = copy.prev_label_to_summer, copy.next_label_to_summer
        else:
            before, after = copy.prev_label_to_standard, copy.next_label_to_standard
        percent = window.progress_percent
        lines.append(f"{before} {progress_bar(percent)} {after}")

    return lines
