from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./learning.db"
    SECRET_KEY: str = "dev-secret-learning"
    JWT_ALGORITHM: str = "HS256"
    LOG_LEVEL: str = "INFO"

    # "day" for streaks and daily history is computed in this zone
    STUDY_DAY_TIMEZONE: str = "UTC"
    STUDY_METRICS_DEFAULT_DAYS: int = 30
    LEARNING_HISTORY_DAYS: int = 365

    CERTIFICATE_CODE_MAX_ATTEMPTS: int = 5
    AUTO_ISSUE_CERTIFICATES: bool = True
    NOTIFICATIONS_PAGE_SIZE: int = 20
    BOOKMARKS_PAGE_SIZE: int = 10

    @field_validator("STUDY_DAY_TIMEZONE")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"Unknown IANA timezone: {value!r}")
        return value

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
