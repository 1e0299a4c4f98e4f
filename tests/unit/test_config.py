"""Tests for environment-driven settings."""

from pathlib import Path

import pytest

from focus_annotator import config
from focus_annotator.config import (
    DEFAULT_MODEL,
    DEFAULT_SERVICE_URL,
    ClientSettings,
    ServiceSettings,
    resolve_data_directory,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_URL",
        "FOCUS_MODEL",
        "FOCUS_MODEL_TIMEOUT",
        "FOCUS_CACHE_TTL",
        "FOCUS_NODE_BUDGET",
        "FOCUS_SERVICE_URL",
        "FOCUS_SERVICE_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


def test_service_settings_defaults() -> None:
    settings = ServiceSettings.from_env()
    assert settings.api_key is None
    assert settings.model == DEFAULT_MODEL


def test_service_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-1")
    monkeypatch.setenv("FOCUS_MODEL", "gpt-4o")
    monkeypatch.setenv("FOCUS_CACHE_TTL", "60")
    monkeypatch.setenv("FOCUS_NODE_BUDGET", "800")

    settings = ServiceSettings.from_env()

    assert settings.api_key == "sk-1"
    assert settings.model == "gpt-4o"
    assert settings.cache_ttl == 60.0
    assert settings.node_budget == 800


def test_invalid_number_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FOCUS_MODEL_TIMEOUT", "soon")
    with pytest.raises(ValueError, match="FOCUS_MODEL_TIMEOUT"):
        ServiceSettings.from_env()


def test_client_settings_strip_trailing_slash(monkeypatch: pytest.MonkeyPatch) -> None:
    assert ClientSettings.from_env().service_url == DEFAULT_SERVICE_URL
    monkeypatch.setenv("FOCUS_SERVICE_URL", "https://focus.example/")
    monkeypatch.setenv("FOCUS_SERVICE_TIMEOUT", "5")
    settings = ClientSettings.from_env()
    assert settings.service_url == "https://focus.example"
    assert settings.timeout == 5.0


def test_resolve_data_directory_prefers_existing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    preferred, fallback = tmp_path / "a", tmp_path / "b"
    monkeypatch.setattr(config, "DATA_DIRECTORIES", [preferred, fallback])
    assert resolve_data_directory() == preferred
    fallback.mkdir()
    assert resolve_data_directory() == fallback
