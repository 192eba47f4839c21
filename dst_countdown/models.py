from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class TransitionKind(Enum):
    """
    Direction of a civil clock offset change.
    """

    SPRING_FORWARD = "forward"
    FALL_BACK = "backward"

    @classmethod
    def from_offsets(cls, offset_before_secs: int, offset_after_secs: int):
        if offset_after_secs == offset_before_secs:
            raise ValueError("Offsets are equal; no transition.")
        if offset_after_secs > offset_before_secs:
            return cls.SPRING_FORWARD
        return cls.FALL_BACK


def to_epoch_ms(dt: datetime) -> int:
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def to_utc_iso(dt: datetime) -> str:
    return (
        dt.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


@dataclass(frozen=True)
class TransitionEvent:
    """
    A single DST boundary crossing.
    """

    kind: TransitionKind
    instant: datetime  # tz-aware UTC
    offset_before_secs: int
    offset_after_secs: int

    @property
    def dst_adjustment_secs(self) -> int:
        return self.offset_after_secs - self.offset_before_secs

    @property
    def timestamp_ms(self) -> int:
        return to_epoch_ms(self.instant)

    @property
    def utc_iso(self) -> str:
        return to_utc_iso(self.instant)

    @property
    def local_time(self) -> datetime:
        """The instant in the fixed offset that applies once it has passed."""
        return self.instant.astimezone(
            timezone(timedelta(seconds=self.offset_after_secs))
        )

    @property
    def local_iso(self) -> str:
        return self.local_time.isoformat(timespec="milliseconds")


@dataclass(frozen=True)
class DstWindow:
    """
    Previous and next transitions around a reference instant.
    """

    timezone_name: str
    reference_instant: datetime  # tz-aware UTC
    next: TransitionEvent | None = None
    previous: TransitionEvent | None = None

    @property
    def has_dst(self) -> bool:
        return self.next is not None

    @property
    def remaining(self) -> timedelta | None:
        if self.next is None:
            return None
        return self.next.instant - self.reference_instant

    @property
    def milliseconds_remaining(self) -> int | None:
        if self.next is None:
            return None
        return self.next.timestamp_ms - to_epoch_ms(self.reference_instant)

    @property
    def progress_percent(self) -> float:
        if self.previous is None or self.next is None:
            return 0.0
        total = self.next.instant - self.previous.instant
        elapsed = self.reference_instant - self.previous.instant
        return min(100.0, max(0.0, elapsed / total * 100))


@dataclass(frozen=True)
class CountryInfo:
    """
    Display and timezone metadata for a country in the static table.
    """

    code: str
    name: str
    timezone: str
    locale: str
    has_dst: bool
    flag: str
    region: str
    southern_hemisphere: bool = False


@dataclass(frozen=True)
class CountryResolution:
    country: CountryInfo  # what the user is shown
    effective: CountryInfo  # whose transitions are computed
    fallback: CountryInfo | None = None
    detected_country: str | None = None
    detected_timezone: str | None = None
