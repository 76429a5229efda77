import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_MODELS = {
    "anthropic": "claude-sonnet-4-5",
    "openai": "gpt-4o-mini",
}


class Settings(BaseModel):
    llm_provider: str = "anthropic"
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    llm_model: Optional[str] = None
    llm_max_tokens: int = 500
    llm_timeout_s: float = 30.0
    llm_max_retries: int = 0
    llm_retry_backoff_s: float = 0.5
    app_timezone: str = "UTC"
    database_path: str = "tasks.db"
    cors_origins: list[str] = ["http://localhost:5173"]
    log_level: str = "INFO"

    @property
    def model_name(self) -> str:
        return self.llm_model or DEFAULT_MODELS.get(self.llm_provider, DEFAULT_MODELS["anthropic"])


def _env(name: str) -> Optional[str]:
    # Treat blank values and the .env.example placeholder as unset
    value = os.getenv(name, "").strip()
    if not value or value == "your-api-key-here":
        return None
    return value


def load_settings() -> Settings:
    """Build settings from the process environment (and .env, if present)."""
    values = {
        "llm_provider": (_env("LLM_PROVIDER") or "anthropic").lower(),
        "anthropic_api_key": _env("ANTHROPIC_API_KEY"),
        "openai_api_key": _env("OPENAI_API_KEY"),
        "llm_model": _env("LLM_MODEL"),
    }
    optional = {
        "openai_base_url": _env("OPENAI_BASE_URL"),
        "llm_max_tokens": _env("LLM_MAX_TOKENS"),
        "llm_timeout_s": _env("LLM_TIMEOUT_S"),
        "llm_max_retries": _env("LLM_MAX_RETRIES"),
        "llm_retry_backoff_s": _env("LLM_RETRY_BACKOFF_S"),
        "app_timezone": _env("APP_TIMEZONE"),
        "database_path": _env("DATABASE_PATH"),
        "log_level": _env("LOG_LEVEL"),
    }
    values.update({key: value for key, value in optional.items() if value is not None})

    origins = _env("CORS_ORIGINS")
    if origins:
        values["cors_origins"] = [origin.strip() for origin in origins.split(",") if origin.strip()]

    return Settings(**values)


@lru_cache
def get_settings() -> Settings:
    return load_settings()
