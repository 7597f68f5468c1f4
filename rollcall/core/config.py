from pydantic_settings import BaseSettings
from typing import Literal


class Settings(BaseSettings):
    APP_NAME: str = "Rollcall"
    AUTH_MODE: Literal["supabase", "mock"] = "mock"
    LOG_LEVEL: str = "INFO"

    SUPABASE_URL: str = ""
    SUPABASE_KEY: str = ""
    SUPABASE_SERVICE_KEY: str = ""
    # PostgREST max-rows; selects are paged in chunks of this size
    SUPABASE_PAGE_SIZE: int = 1000

    CORS_ORIGINS: str = "http://localhost:5173"

    # Attendance sync
    ATTENDANCE_FETCH_LIMIT: int = 10000
    REFRESH_AFTER_BATCH: bool = False
    RECENT_WRITE_WINDOW_SECONDS: float = 30.0

    # Alerts
    ABSENCE_ALERT_THRESHOLD: int = 4

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
