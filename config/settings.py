"""Configuration settings loaded from .env file."""

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings, loaded from .env file.

    API keys are optional here: they are checked when a request actually
    needs a provider, so the service starts without any key configured.
    """

    # Provider credentials
    openai_api_key: Optional[str] = None
    openrouter_api_key: Optional[str] = None
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    app_url: str = "http://localhost:3000"
    app_title: str = "PowerWrite Book Studio"

    # Models: OpenRouter ids contain a slash, bare ids go to OpenAI
    default_outline_model: str = "openai/gpt-4o-mini"
    default_chapter_model: str = "anthropic/claude-sonnet-4"
    openai_outline_model: str = "gpt-4o-mini"
    openai_chapter_model: str = "gpt-4o"
    outline_temperature: float = 0.8
    chapter_temperature: float = 0.85
    llm_timeout: float = 300.0

    # Database
    sqlite_db_path: Path = Path("./data/bookstudio.db")

    # Shared demo account
    demo_user_id: str = "demo-user-001"

    # Event bus (Inngest event API)
    inngest_base_url: str = "https://inn.gs"
    inngest_event_key: Optional[str] = None
    inngest_timeout: float = 10.0

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Logging
    log_dir: Path = Path("./data/logs")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @field_validator("outline_temperature", "chapter_temperature")
    @classmethod
    def validate_temperature(cls, v: float) -> float:
        if not 0.0 <= v <= 2.0:
            raise ValueError("temperature must be between 0 and 2")
        return v

    @field_validator("llm_timeout", "inngest_timeout")
    @classmethod
    def validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeout must be > 0")
        return v

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 0 < v < 65536:
            raise ValueError("port must be between 1 and 65535")
        return v

    @field_validator("sqlite_db_path", "log_dir")
    @classmethod
    def ensure_parent_dirs(cls, v: Path) -> Path:
        v.parent.mkdir(parents=True, exist_ok=True)
        return v

    @property
    def has_llm_provider(self) -> bool:
        return bool(self.openai_api_key or self.openrouter_api_key)


_settings_instance: Settings | None = None


def get_settings() -> Settings:
    """Get cached settings instance."""
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
