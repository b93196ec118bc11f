"""Unit tests for Courier configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from courier.config import BreakerSettings, Settings
from courier.models import RetryPolicy


def _settings(**kwargs: object) -> Settings:
    return Settings(_env_file=None, **kwargs)  # type: ignore[arg-type]


class TestBreakerSettings:
    """Tests for BreakerSettings."""

    def test_defaults(self) -> None:
        breaker = BreakerSettings()
        assert breaker.failure_threshold == 10
        assert breaker.failure_rate == 0.9

    def test_rate_bounds(self) -> None:
        with pytest.raises(ValidationError):
            BreakerSettings(failure_rate=1.5)
        with pytest.raises(ValidationError):
            BreakerSettings(failure_rate=0.0)


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self) -> None:
        settings = _settings()
        assert settings.default_timeout_ms == 5000
        assert settings.test_timeout_ms == 10000
        assert settings.worker_tick_seconds == 1.0
        assert settings.default_retry_policy == RetryPolicy()
        assert settings.plan_endpoint_limits == {"free": 1, "basic": 5, "premium": 50}
        assert settings.default_plan == "free"
        assert settings.log_retention_entries == 100

    def test_env_prefix(self) -> None:
        with patch.dict(os.environ, {"COURIER_WORKER_TICK_SECONDS": "0.25"}):
            settings = _settings()
        assert settings.worker_tick_seconds == 0.25

    def test_nested_env(self) -> None:
        with patch.dict(
            os.environ,
            {
                "COURIER_BREAKER__FAILURE_RATE": "0.75",
                "COURIER_DEFAULT_RETRY_POLICY__MAX_RETRIES": "5",
            },
        ):
            settings = _settings()
        assert settings.breaker.failure_rate == 0.75
        assert settings.default_retry_policy.max_retries == 5

    def test_plan_limits_from_env(self) -> None:
        with patch.dict(
            os.environ,
            {"COURIER_PLAN_ENDPOINT_LIMITS": '{"free": 2, "basic": 10, "premium": 100}'},
        ):
            settings = _settings()
        assert settings.endpoint_limit("basic") == 10

    def test_default_plan_must_have_limit(self) -> None:
        with pytest.raises(ValidationError):
            _settings(default_plan="enterprise")

    def test_negative_limit_rejected(self) -> None:
        with pytest.raises(ValidationError):
            _settings(plan_endpoint_limits={"free": -1})

    def test_endpoint_limit_falls_back_to_default_plan(self) -> None:
        settings = _settings()
        assert settings.endpoint_limit("premium") == 50
        assert settings.endpoint_limit("unknown-tier") == 1

    def test_timeout_bounds(self) -> None:
        with pytest.raises(ValidationError):
            _settings(default_timeout_ms=10)
