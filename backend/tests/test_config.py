"""
Tests for config.py - settings loaded from the environment.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import load_settings

ENV_VARS = [
    "LLM_PROVIDER", "ANTHROPIC_API_KEY", "OPENAI_API_KEY", "OPENAI_BASE_URL", "LLM_MODEL",
    "LLM_MAX_TOKENS", "LLM_TIMEOUT_S", "LLM_MAX_RETRIES", "LLM_RETRY_BACKOFF_S",
    "APP_TIMEZONE", "DATABASE_PATH", "CORS_ORIGINS", "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.llm_provider == "anthropic"
    assert settings.anthropic_api_key is None
    assert settings.model_name == "claude-sonnet-4-5"
    assert settings.llm_max_tokens == 500
    assert settings.llm_max_retries == 0
    assert settings.app_timezone == "UTC"
    assert settings.cors_origins == ["http://localhost:5173"]


def test_openai_default_model(clean_env):
    clean_env.setenv("LLM_PROVIDER", "OpenAI")

    settings = load_settings()

    assert settings.llm_provider == "openai"
    assert settings.model_name == "gpt-4o-mini"


def test_overrides(clean_env):
    clean_env.setenv("LLM_MODEL", "claude-haiku-4-5")
    clean_env.setenv("LLM_MAX_TOKENS", "256")
    clean_env.setenv("LLM_TIMEOUT_S", "12.5")
    clean_env.setenv("LLM_MAX_RETRIES", "2")
    clean_env.setenv("APP_TIMEZONE", "Europe/Prague")
    clean_env.setenv("CORS_ORIGINS", "http://localhost:5173, https://tasks.example.com")

    settings = load_settings()

    assert settings.model_name == "claude-haiku-4-5"
    assert settings.llm_max_tokens == 256
    assert settings.llm_timeout_s == 12.5
    assert settings.llm_max_retries == 2
    assert settings.app_timezone == "Europe/Prague"
    assert settings.cors_origins == ["http://localhost:5173", "https://tasks.example.com"]


@pytest.mark.parametrize("value", ["", "   ", "your-api-key-here"])
def test_placeholder_key_is_unset(clean_env, value):
    clean_env.setenv("ANTHROPIC_API_KEY", value)
    assert load_settings().anthropic_api_key is None
