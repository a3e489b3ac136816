from functools import lru_cache
from typing import Annotated, Any, List

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore", populate_by_name=True
    )

    heygen_api_key: SecretStr = Field(..., validation_alias="HEYGEN_API_KEY")
    heygen_base_url: str = Field("https://api.heygen.com", validation_alias="HEYGEN_BASE_URL")

    request_timeout_sec: float = Field(30.0, validation_alias="REQUEST_TIMEOUT_SEC")
    poll_interval_sec: float = Field(5.0, validation_alias="POLL_INTERVAL_SEC")

    app_host: str = Field("127.0.0.1", validation_alias="APP_HOST")
    app_port: int = Field(3000, validation_alias="APP_PORT")
    cors_origins: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["*"], validation_alias="CORS_ORIGINS")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    @field_validator("heygen_base_url", mode="before")
    @classmethod
    def normalize_base_url(cls, value: str) -> str:
        value = value or "https://api.heygen.com"
        return value.rstrip("/")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_cors_origins(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()] or ["*"]
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").upper()

    @field_validator("poll_interval_sec")
    @classmethod
    def positive_interval(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("POLL_INTERVAL_SEC must be positive")
        return value


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except Exception as exc:
        raise RuntimeError("Failed to load application settings. Ensure your .env file is configured.") from exc
