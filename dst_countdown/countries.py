import json
import logging
from functools import lru_cache
from importlib import resources
from typing import Any

from .calculator import load_zone
from .errors import InvalidCountryCode, InvalidTimezone
from .models import CountryInfo, CountryResolution

logger = logging.getLogger(__name__)

_PACKAGE = "dst_countdown"
_COUNTRIES_RESOURCE = "data/countries.json"


def normalize_code(code: str | None) -> str | None:
    if code is None:
        return None
    code = code.strip().upper()
    return code or None


class CountryTable:
    def __init__(
        self,
        countries: dict[str, CountryInfo],
        no_dst: tuple[str, ...],
        default_country: str,
    ) -> None:
        if default_country not in countries:
            raise InvalidCountryCode(default_country)
        if not countries[default_country].has_dst:
            raise ValueError(
                f"Default country {default_country!r} does not observe DST"
            )
        self.countries = countries
        self.no_dst = no_dst
        self.default_country = default_country

    @property
    def default(self) -> CountryInfo:
        return self.countries[self.default_country]

    def with_default(self, code: str) -> "CountryTable":
        default_country = normalize_code(code)
        if default_country == self.default_country:
            return self
        return CountryTable(self.countries, self.no_dst, default_country or "")

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and normalize_code(code) in self.countries

    def get(self, code: str | None) -> CountryInfo:
        normalized = normalize_code(code)
        if normalized is None or normalized not in self.countries:
            raise InvalidCountryCode(code)
        return self.countries[normalized]

    def resolve_code(self, explicit: str | None, detected: str | None = None) -> str:
        """
        Pick a country code: an explicit known code, then a detected known
        code (with or without DST), then the default.
        """
        explicit_code = normalize_code(explicit)
        if explicit_code is not None:
            if explicit_code in self.countries:
                return explicit_code
            logger.warning("Ignoring unknown country code %r", explicit)

        detected_code = normalize_code(detected)
        if detected_code is not None:
            if detected_code in self.countries:
                return detected_code
            logger.debug("Detected country %r is not in the table", detected)

        return self.default_country

    def resolve(
        self,
        explicit: str | None,
        detected: str | None = None,
        detected_timezone: str | None = None,
    ) -> CountryResolution:
        country = self.countries[self.resolve_code(explicit, detected)]
        if country.has_dst:
            effective, fallback = country, None
        else:
            effective = fallback = self.default

        return CountryResolution(
            country=country,
            effective=effective,
            fallback=fallback,
            detected_country=normalize_code(detected),
            detected_timezone=_validated_timezone(detected_timezone),
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CountryTable":
        no_dst = tuple(code.upper() for code in data.get("noDST", ()))
        countries = {
            code.upper(): CountryInfo(
                code=code.upper(),
                name=entry["name"],
                timezone=entry["timezone"],
                locale=entry["locale"],
                has_dst=bool(entry["hasDST"]) and code.upper() not in no_dst,
                flag=entry["flag"],
                region=entry["region"],
                southern_hemisphere=bool(entry.get("southernHemisphere", False)),
            )
            for code, entry in data["countries"].items()
        }
        return cls(countries, no_dst, data["defaultCountry"].upper())

    @classmethod
    def load(cls) -> "CountryTable":
        resource = resources.files(_PACKAGE).joinpath(_COUNTRIES_RESOURCE)
        with resource.open("r", encoding="utf-8") as file:
            return cls.from_dict(json.load(file))

    def __repr__(self) -> str:
        return (
            f"CountryTable(countries={len(self.countries)}, "
            f"no_dst={len(self.no_dst)}, "
            f"default_country={self.default_country!r})"
        )


@lru_cache(maxsize=1)
def default_table() -> CountryTable:
    return CountryTable.load()


def _validated_timezone(timezone_name: str | None) -> str | None:
    if not timezone_name:
        return None
    try:
        load_zone(timezone_name)
    except InvalidTimezone:
        logger.warning("Ignoring unknown detected timezone %r", timezone_name)
        return None
    return timezone_name
