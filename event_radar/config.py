from __future__ import annotations

from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    mongodb_uri: str = Field(default="mongodb://localhost:27017", alias="MONGODB_URI")
    mongodb_db: str = Field(default="event_radar", alias="MONGODB_DB")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    timezone: str = Field(default="Europe/Berlin", alias="TIMEZONE")
    default_city: str = Field(default="Passau", alias="DEFAULT_CITY")
    http_timeout_seconds: int = Field(default=15, alias="HTTP_TIMEOUT_SECONDS")

    gemini_api_key: str = Field(default="", alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", alias="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta", alias="GEMINI_BASE_URL"
    )
    llm_timeout_seconds: int = Field(default=90, alias="LLM_TIMEOUT_SECONDS")
    llm_max_retries: int = Field(default=3, alias="LLM_MAX_RETRIES")
    llm_retry_base_seconds: float = Field(default=2.0, alias="LLM_RETRY_BASE_SECONDS")

    ticketmaster_api_key: str = Field(default="", alias="TICKETMASTER_API_KEY")
    ticketmaster_base_url: str = Field(
        default="https://app.ticketmaster.com/discovery/v2", alias="TICKETMASTER_BASE_URL"
    )
    ticketmaster_country_code: str = Field(default="DE", alias="TICKETMASTER_COUNTRY_CODE")
    ticketmaster_limit: int = Field(default=50, alias="TICKETMASTER_LIMIT")

    ai_scan_cooldown_minutes: int = Field(default=60, alias="AI_SCAN_COOLDOWN_MINUTES")
    discovery_window_days: int = Field(default=14, alias="DISCOVERY_WINDOW_DAYS")
    ai_min_confidence: float = Field(default=0.7, alias="AI_MIN_CONFIDENCE")
    grounding_penalty: float = Field(default=0.85, alias="GROUNDING_PENALTY")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
