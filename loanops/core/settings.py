from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    database_url: str = Field(default="sqlite+aiosqlite:///./loanops.db", alias="DATABASE_URL")
    auto_create_tables: bool = Field(default=True, alias="AUTO_CREATE_TABLES")
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000", alias="ALLOWED_ORIGINS"
    )
    enable_hsts: bool = Field(default=False, alias="ENABLE_HSTS")
    rate_limit_per_minute: int = Field(default=120, alias="RATE_LIMIT_PER_MINUTE")
    rate_limit_storage_uri: str = Field(default="memory://", alias="RATE_LIMIT_STORAGE_URI")
    bulk_upload_max_bytes: int = Field(default=10 * 1024 * 1024, alias="BULK_UPLOAD_MAX_BYTES")
    bulk_upload_feedback_limit: int = Field(default=15, alias="BULK_UPLOAD_FEEDBACK_LIMIT")
    display_timezone: str = Field(default="Asia/Kolkata", alias="DISPLAY_TIMEZONE")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
