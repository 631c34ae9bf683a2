from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")
    DATABASE_URL: str
    ENV: str = "dev"

    STRAVA_CLIENT_ID: str
    STRAVA_CLIENT_SECRET: str
    STRAVA_OAUTH_URL: str
    STRAVA_WEBHOOK_URL: str
    STRAVA_VERIFY_TOKEN: str
    STRAVA_HTTP_TIMEOUT: float = 30.0

    REWARD_TZ: str = "UTC"
    PAYOUT_INTERVAL_SECONDS: int = 60
    PAYOUT_SCHEDULER_ENABLED: bool = True

    ADMIN_TOKEN: str | None = None

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "text"

@lru_cache
def get_settings() -> Settings:
    return Settings()
