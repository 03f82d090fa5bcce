"""Settings configuration"""
from typing import Optional
from pydantic import AliasChoices, Field, field_validator, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Dispatcher settings loaded from the environment and an optional .env file"""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", case_sensitive=False,
        validate_assignment=True, populate_by_name=True
    )

    # Application
    app_name: str = Field(default="LLM Dispatcher", validation_alias="APP_NAME")
    version: str = "1.0.0"
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    debug: bool = Field(default=False, validation_alias="DEBUG")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_format: str = Field(default="json", validation_alias="LOG_FORMAT")

    # Server
    host: str = Field(default="0.0.0.0", validation_alias="HOST")
    port: int = Field(default=8000, validation_alias="PORT", ge=1, le=65535)

    # Provider credentials
    openrouter_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias="OPENROUTER_API_KEY"
    )
    groq_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("GROQ_API_KEY", "LLM_GROQ_GLOBAL_API_KEY")
    )
    together_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("TOGETHER_API_KEY", "LLM_TOGETHER_GLOBAL_API_KEY"),
    )
    gemini_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=AliasChoices("GEMINI_API_KEY", "LLM_GEMINI_API_KEY")
    )
    anthropic_api_key: Optional[SecretStr] = Field(
        default=None, validation_alias="ANTHROPIC_API_KEY"
    )
    mock_provider_enabled: bool = Field(default=False, validation_alias="MOCK_PROVIDER_ENABLED")

    # Dispatch
    default_temperature: float = Field(default=0.7, validation_alias="DEFAULT_TEMPERATURE", ge=0, le=2)
    default_max_tokens: int = Field(default=2048, validation_alias="DEFAULT_MAX_TOKENS", ge=1)
    cache_ttl_seconds: float = Field(default=300, validation_alias="CACHE_TTL_SECONDS", gt=0)
    health_check_enabled: bool = Field(default=True, validation_alias="HEALTH_CHECK_ENABLED")
    health_check_interval_seconds: float = Field(
        default=600, validation_alias="HEALTH_CHECK_INTERVAL_SECONDS", gt=0
    )
    deactivation_success_rate: float = Field(
        default=30.0, validation_alias="DEACTIVATION_SUCCESS_RATE", ge=0, le=100
    )
    deactivation_min_requests: int = Field(
        default=5, validation_alias="DEACTIVATION_MIN_REQUESTS", ge=0
    )

    # Audit
    audit_enabled: bool = Field(default=True, validation_alias="AUDIT_ENABLED")
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    prompt_preview_length: int = Field(default=100, validation_alias="PROMPT_PREVIEW_LENGTH", ge=0)

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v):
        allowed = ["development", "staging", "production", "testing"]
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in allowed:
            raise ValueError(f"log_level must be one of {allowed}")
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v):
        v = v.lower()
        if v not in ("json", "console"):
            raise ValueError("log_format must be 'json' or 'console'")
        return v

    # Properties
    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def has_database(self) -> bool:
        return bool(self.database_url)

    def credential_for(self, field_name: str) -> Optional[SecretStr]:
        """Return the credential stored in ``field_name``, treating blanks as absent."""
        value = getattr(self, field_name, None)
        if value is None or not value.get_secret_value().strip():
            return None
        return value


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
