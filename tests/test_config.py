"""Tests for config/config_loader.py."""

from pathlib import Path

import pytest
import yaml

from config.config_loader import SERVICE_NAMES, AppConfig, ModelConfig, PromptsConfig, load_config


def _settings(**overrides) -> dict:
    settings = {
        "defaults": {
            "reasoning_skill": "Advanced",
            "min_turns_for_jury": 6,
            "min_chars_for_poi": 100,
            "share_origin": "https://ace.example/",
            "data_dir": "./data",
            "report_dir": "./reports",
            "audio_dir": "./data/audio",
        },
        "models": {
            "claude": {
                "sdk": "anthropic",
                "model": "claude-sonnet-4-20250514",
                "api_key_env": "TEST_CLAUDE_KEY",
                "timeout_sec": 120,
                "max_tokens": 8192,
            }
        },
        "services": {name: "claude" for name in SERVICE_NAMES},
        "prompts": {
            "analysis": "Topic {topic}: {argument}",
            "counter_argument": "{skill} {role_context} {topic} {transcript}",
            "verdict": "{role_context} {topic} {transcript}",
            "research": "{topic}",
            "poi": "{topic} {draft}",
            "topics": "{category_context}",
            "argument": "{topic} {skill}",
        },
    }
    settings.update(overrides)
    return settings


@pytest.fixture
def minimal_settings(tmp_path: Path) -> Path:
    """Write a minimal valid settings.yaml to a temp path."""
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(_settings()), encoding="utf-8")
    return path


def test_load_config_returns_app_config(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config, AppConfig)


def test_load_config_defaults(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.reasoning_skill == "Advanced"
    assert config.defaults.min_turns_for_jury == 6
    assert config.defaults.min_chars_for_poi == 100
    assert config.defaults.speech_time_sec == 420
    assert isinstance(config.defaults.data_dir, Path)


def test_share_origin_trailing_slash_stripped(minimal_settings):
    config = load_config(minimal_settings)
    assert config.defaults.share_origin == "https://ace.example"


def test_load_config_models(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.models["claude"], ModelConfig)
    assert config.models["claude"].sdk == "anthropic"
    assert config.models["claude"].base_url is None


def test_load_config_prompts(minimal_settings):
    config = load_config(minimal_settings)
    assert isinstance(config.prompts, PromptsConfig)
    assert "{argument}" in config.prompts.analysis


def test_every_service_assigned(minimal_settings):
    config = load_config(minimal_settings)
    assert set(config.services) == set(SERVICE_NAMES)


def test_speech_defaults_when_section_missing(minimal_settings):
    config = load_config(minimal_settings)
    assert config.speech.enabled is False
    assert config.speech.voice == "alloy"
    assert config.speech.role_voices == {}


def test_load_config_available_providers_with_key(minimal_settings, monkeypatch):
    monkeypatch.setenv("TEST_CLAUDE_KEY", "sk-test-key")
    config = load_config(minimal_settings)
    assert "claude" in config.available_providers


def test_load_config_no_available_providers_without_key(minimal_settings, monkeypatch):
    monkeypatch.delenv("TEST_CLAUDE_KEY", raising=False)
    config = load_config(minimal_settings)
    assert "claude" not in config.available_providers


def test_load_config_missing_file():
    with pytest.raises(FileNotFoundError):
        load_config(Path("/nonexistent/settings.yaml"))


def test_unknown_service_provider_rejected(tmp_path: Path):
    settings = _settings(services={"verdict": "grok"})
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.dump(settings), encoding="utf-8")
    with pytest.raises(ValueError, match="grok"):
        load_config(path)


def test_shipped_settings_load():
    config = load_config()
    assert set(config.models) >= {"gemini", "claude", "openai"}
    assert "{transcript}" in config.prompts.verdict
