import pytest
from pydantic import ValidationError

from docbridge.app.config import (
    BridgeConfig,
    get_config,
    min_content_rule,
    not_none_rule,
)


def test_defaults():
    config = BridgeConfig()

    assert config.enable_validation is True
    assert config.enable_error_recovery is True
    assert config.debug_mode is False
    assert config.max_retry_attempts == 3
    assert config.timeout_ms == 5000
    assert config.performance_logging is False
    assert config.strict_type_checking is True
    assert config.custom_validation_rules == {}
    assert config.feature_flags == frozenset()


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("DOCBRIDGE_TIMEOUT_MS", "2500")
    monkeypatch.setenv("DOCBRIDGE_DEBUG_MODE", "true")

    config = BridgeConfig()

    assert config.timeout_ms == 2500
    assert config.debug_mode is True


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_retry_attempts": 0},
        {"max_retry_attempts": 11},
        {"timeout_ms": 0},
        {"timeout_ms": 30001},
        {"custom_validation_rules": {"broken": "not callable"}},
    ],
)
def test_out_of_range_values_are_rejected(overrides):
    with pytest.raises(ValidationError):
        BridgeConfig(**overrides)


def test_config_is_frozen():
    config = BridgeConfig()

    with pytest.raises(ValidationError):
        config.timeout_ms = 10


def test_presets():
    development = BridgeConfig.development()
    production = BridgeConfig.production()
    testing = BridgeConfig.testing()

    assert development.debug_mode is True
    assert development.max_retry_attempts == 5
    assert "basicCheck" in development.custom_validation_rules

    assert production.debug_mode is False
    assert "STRICT_VALIDATION" in production.feature_flags
    assert "minContent" in production.custom_validation_rules

    assert testing.max_retry_attempts == 1
    assert testing.enable_error_recovery is False
    assert testing.update_settle_delay_s == 0


def test_builtin_rules():
    assert min_content_rule("exactly10!") is True
    assert min_content_rule("short") is False
    assert min_content_rule(None) is False
    assert not_none_rule("") is True
    assert not_none_rule(None) is False


def test_get_config_reads_environment_once(monkeypatch):
    get_config.cache_clear()
    monkeypatch.setenv("DOCBRIDGE_TIMEOUT_MS", "1234")

    first = get_config()
    monkeypatch.setenv("DOCBRIDGE_TIMEOUT_MS", "4321")
    second = get_config()
    get_config.cache_clear()

    assert first is second
    assert first.timeout_ms == 1234
