from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parent.parent


class Settings(BaseSettings):  # FRUIT_* environment variables or .env
    """Server and storage settings"""
    SCORES_FILE: Path = BASE_DIR / "data" / "fruit-scores.json"
    DAILY_SCORES_FILE: Path = BASE_DIR / "data" / "fruit-scores-daily.json"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    DEFAULT_TIER: int = 2
    LOG_LEVEL: str = "INFO"
    ERROR_LOG_FILE: str = "app_errors.log"

    model_config = SettingsConfigDict(
        env_prefix="FRUIT_",
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
