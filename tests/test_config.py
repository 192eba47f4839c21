from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from dst_countdown.calculator import TransitionPolicy
from dst_countdown.config import ApiMode, Settings


def test_defaults(monkeypatch):
    for name in ("MODE", "DEFAULT_COUNTRY", "SEARCH_HORIZON_YEARS", "FAKE_NOW"):
        monkeypatch.delenv(f"DST_COUNTDOWN_{name}", raising=False)

    settings = Settings()

    assert settings.MODE is ApiMode.INTERNATIONAL
    assert settings.DEFAULT_COUNTRY == "GB"
    assert settings.SEARCH_HORIZON_YEARS == 2
    assert settings.TRANSITION_POLICY is TransitionPolicy.EXACT
    assert settings.FAKE_NOW is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DST_COUNTDOWN_MODE", "UK")
    monkeypatch.setenv("DST_COUNTDOWN_DEFAULT_COUNTRY", " se ")
    monkeypatch.setenv("DST_COUNTDOWN_TRANSITION_POLICY", "fixed_hour")
    monkeypatch.setenv("DST_COUNTDOWN_LOG_LEVEL", "debug")

    settings = Settings()

    assert settings.MODE is ApiMode.UK
    assert settings.DEFAULT_COUNTRY == "SE"
    assert settings.TRANSITION_POLICY is TransitionPolicy.FIXED_HOUR
    assert settings.LOG_LEVEL == "DEBUG"


def test_search_horizon_must_be_positive():
    with pytest.raises(ValidationError):
        Settings(SEARCH_HORIZON_YEARS=0)


def test_fake_now_naive_is_utc():
    settings = Settings(FAKE_NOW=datetime(2025, 9, 20, 14))

    assert settings.now() == datetime(2025, 9, 20, 14, tzinfo=timezone.utc)


def test_now_without_fake_is_current():
    before = datetime.now(timezone.utc)
    now = Settings(FAKE_NOW=None).now()

    assert now.tzinfo == timezone.utc
    assert now >= before
