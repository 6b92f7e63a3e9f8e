"""Tests for environment configuration loading."""

from __future__ import annotations

import pytest

from src.config import (
    DEFAULT_GRAPH_API_BASE,
    ConfigurationError,
    RelaySettings,
    clean_token,
    mask_secret,
)

_REQUIRED = {
    "VERIFY_TOKEN": "verify-me",
    "PAGE_ACCESS_TOKEN": "IGAAabc123",
    "GEMINI_API_KEY": "gem-key",
}


def test_loads_required_values() -> None:
    settings = RelaySettings.from_env(dict(_REQUIRED))
    assert settings.verify_token == "verify-me"
    assert settings.page_access_token == "IGAAabc123"
    assert settings.gemini_api_key == "gem-key"
    assert settings.serp_api_key is None
    assert settings.search_enabled is False
    assert settings.graph_api_base == DEFAULT_GRAPH_API_BASE
    assert settings.log_max_entries == 1000


def test_optional_values() -> None:
    env = {
        **_REQUIRED,
        "SERP_API_KEY": "serp",
        "APP_SECRET": "secret",
        "ADMIN_TOKEN": "admin",
        "LOG_MAX_ENTRIES": "500",
        "LOG_LEVEL": "debug",
    }
    settings = RelaySettings.from_env(env)
    assert settings.search_enabled is True
    assert settings.app_secret == "secret"
    assert settings.admin_token == "admin"
    assert settings.log_max_entries == 500
    assert settings.log_level == "DEBUG"


def test_blank_optional_values_treated_as_absent() -> None:
    settings = RelaySettings.from_env({**_REQUIRED, "SERP_API_KEY": "  "})
    assert settings.serp_api_key is None


@pytest.mark.parametrize("name", sorted(_REQUIRED))
def test_missing_required_variable_fails_fast(name: str) -> None:
    env = {k: v for k, v in _REQUIRED.items() if k != name}
    with pytest.raises(ConfigurationError) as exc_info:
        RelaySettings.from_env(env)
    assert exc_info.value.missing == [name]
    assert name in str(exc_info.value)


def test_all_missing_reported_together() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        RelaySettings.from_env({})
    assert exc_info.value.missing == ["VERIFY_TOKEN", "PAGE_ACCESS_TOKEN", "GEMINI_API_KEY"]


def test_invalid_log_max_entries() -> None:
    with pytest.raises(ConfigurationError):
        RelaySettings.from_env({**_REQUIRED, "LOG_MAX_ENTRIES": "lots"})


@pytest.mark.parametrize("value", ["0", "-5"])
def test_non_positive_log_max_entries_is_configuration_error(value: str) -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        RelaySettings.from_env({**_REQUIRED, "LOG_MAX_ENTRIES": value})
    assert exc_info.value.missing == ["LOG_MAX_ENTRIES"]
    assert "LOG_MAX_ENTRIES" in str(exc_info.value)


def test_unknown_log_level_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError) as exc_info:
        RelaySettings.from_env({**_REQUIRED, "LOG_LEVEL": "verbose"})
    assert exc_info.value.missing == ["LOG_LEVEL"]
    assert "VERBOSE" in str(exc_info.value)


def test_page_token_sanitised_at_load() -> None:
    settings = RelaySettings.from_env({**_REQUIRED, "PAGE_ACCESS_TOKEN": ' "IGAA abc-123"\n'})
    assert settings.page_access_token == "IGAAabc123"


def test_page_token_only_punctuation_rejected() -> None:
    with pytest.raises(ConfigurationError):
        RelaySettings.from_env({**_REQUIRED, "PAGE_ACCESS_TOKEN": "--"})


def test_clean_token() -> None:
    assert clean_token("IGAA_x y\tz") == "IGAAxyz"


def test_settings_are_frozen() -> None:
    settings = RelaySettings.from_env(dict(_REQUIRED))
    with pytest.raises(Exception):
        settings.verify_token = "other"  # type: ignore[misc]


def test_masked_summary_hides_secrets() -> None:
    settings = RelaySettings.from_env({**_REQUIRED, "PAGE_ACCESS_TOKEN": "IGAA" + "x" * 40})
    summary = str(settings.masked_summary())
    assert "IGAA" + "x" * 40 not in summary
    assert "verify-me" not in summary
    assert "gem-key" not in summary


def test_mask_secret() -> None:
    assert mask_secret(None) is None
    assert mask_secret("abc") == "***"
    assert mask_secret("abcdefghij", visible=4) == "abcd...(10 chars)"
