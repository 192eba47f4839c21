from .calculator import TransitionPolicy, compute_window, find_transitions
from .countries import CountryTable
from .errors import (
    CalendarComputationFailure,
    DstCountdownError,
    InvalidCountryCode,
    InvalidTimezone,
    UpstreamFetchFailure,
)
from .models import CountryInfo, DstWindow, TransitionEvent, TransitionKind
from .rules import compute_uk_window, uk_transitions

__all__ = [
    "CalendarComputationFailure",
    "CountryInfo",
    "CountryTable",
    "DstCountdownError",
    "DstWindow",
    "InvalidCountryCode",
    "InvalidTimezone",
    "TransitionEvent",
    "TransitionKind",
    "TransitionPolicy",
    "UpstreamFetchFailure",
    "compute_uk_window",
    "compute_window",
    "find_transitions",
    "uk_transitions",
]
