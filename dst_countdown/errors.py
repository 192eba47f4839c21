class DstCountdownError(Exception):
    """
    Base class for every error raised by this package.
    """


class InvalidTimezone(DstCountdownError, ValueError):
    def __init__(self, timezone_name: str) -> None:
        super().__init__(f"Invalid timezone name: {timezone_name!r}")
        self.timezone_name = timezone_name


class InvalidCountryCode(DstCountdownError, KeyError):
    def __init__(self, code: str | None) -> None:
        super().__init__(f"Unknown country code: {code!r}")
        self.code = code

    def __str__(self) -> str:
        # KeyError quotes its argument otherwise
        return str(self.args[0])


class CalendarComputationFailure(DstCountdownError):
    """
    The date library rejected a date or instant built during a scan.
    """


class UpstreamFetchFailure(DstCountdownError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason
