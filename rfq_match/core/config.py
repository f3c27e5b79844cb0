from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application
    APP_ENV: str = "development"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"  # "console" or "json"

    # Matching
    MATCH_CACHE_TTL_SECONDS: float = 300.0
    SCORING_CONCURRENCY: int = 8
    DEFAULT_MATCH_LIMIT: int = 10
    DEFAULT_MIN_SCORE: float = 60.0

    # Candidate / opportunity repository transport
    REPOSITORY_URL: str | None = None
    REPOSITORY_API_KEY: str = ""
    REPOSITORY_TIMEOUT_SECONDS: float = 10.0
    REPOSITORY_RETRIES: int = 2
    REPOSITORY_PAGE_LIMIT: int = 100

    # Notifications
    NOTIFY_WEBHOOK_URL: str | None = None
    NOTIFY_TIMEOUT_SECONDS: float = 20.0
    NOTIFY_DRY_RUN: bool = False
    NOTIFY_LOG_HISTORY: int = 100

    # Partnerships
    FACILITATION_LIMIT: int = 5

    @model_validator(mode="after")
    def _validate_production_repository(self) -> "Settings":
        if self.APP_ENV == "production" and not self.REPOSITORY_URL:
            raise ValueError(
                "REPOSITORY_URL is required in production; "
                "in-memory repositories are for development and tests only."
            )
        if self.LOG_FORMAT not in ("console", "json"):
            raise ValueError(f"LOG_FORMAT must be 'console' or 'json', got {self.LOG_FORMAT!r}")
        return self


settings = Settings()
