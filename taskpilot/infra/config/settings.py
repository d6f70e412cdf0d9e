"""
Application configuration settings.

Read once at startup; nothing here is hot-reloaded.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=[".env", "../.env"],
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = Field("TaskPilot AI", alias="APP_NAME")
    environment: str = Field("development", alias="ENVIRONMENT")
    debug: bool = Field(False, alias="DEBUG")
    disable_auth: bool = Field(False, alias="DISABLE_AUTH")

    # AI capability
    ai_enabled: bool = Field(True, alias="AI_ENABLED")
    ai_provider: str = Field("mock", alias="AI_PROVIDER")
    ai_model: str = Field("gpt-4o-mini", alias="AI_MODEL")
    ai_temperature: float = Field(0.3, alias="AI_TEMPERATURE")
    openai_api_key: str = Field("", alias="OPENAI_API_KEY")
    openai_base_url: str = Field("", alias="OPENAI_BASE_URL")
    ai_default_max_tokens: int = Field(4096, alias="AI_DEFAULT_MAX_TOKENS", ge=1)
    ai_mock_latency_seconds: float = Field(0.0, alias="AI_MOCK_LATENCY_SECONDS", ge=0)

    # Governor
    ai_timeout_seconds: float = Field(60.0, alias="AI_TIMEOUT_SECONDS", gt=0)
    ai_max_concurrent: int = Field(5, alias="AI_MAX_CONCURRENT", ge=1)
    ai_max_per_day_per_user: int = Field(100, alias="AI_MAX_PER_DAY_USER", ge=1)
    ai_max_per_minute: int = Field(0, alias="AI_MAX_PER_MINUTE", ge=0)

    # Observability
    metrics_queue_size: int = Field(1000, alias="METRICS_QUEUE_SIZE", ge=1)
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_format: str = Field("json", alias="LOG_FORMAT")

    # CORS
    cors_origins: str = Field("*", alias="CORS_ORIGINS")

    def get_cors_origins(self) -> list[str]:
        """Parse CORS origins from string."""
        if self.cors_origins == "*":
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",")]

    def has_api_key(self) -> bool:
        return bool(self.openai_api_key.strip())


_settings = None


def get_settings() -> Settings:
    """Get settings instance (useful for dependency injection)."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached instance so the next call re-reads the environment."""
    global _settings
    _settings = None
