from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # App
    ENV: str = "development"
    DEBUG: bool = True

    # Auth (tokens are issued by the partner admin service, only decoded here)
    SECRET_KEY: str = "change-me"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Database
    DATABASE_URL: str = "sqlite:///./crewplan.db"

    # Telegram
    TELEGRAM_API_BASE: str = "https://api.telegram.org"
    TELEGRAM_ENABLED: bool = True
    TELEGRAM_TIMEOUT_SECONDS: float = 10.0

    # Scheduling defaults, used when a partner has no settings row yet
    DEFAULT_TIMEZONE: str = "Europe/Kiev"
    DEFAULT_PLANNING_HORIZON_DAYS: int = 14

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()
