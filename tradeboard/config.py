from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

class Settings(BaseSettings):
    # General
    LOG_LEVEL: str = "INFO"
    ENV: str = "development"

    # HTTP server
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    STATIC_DIR: Optional[str] = None

    # Binance Futures (settings stored through the UI take precedence)
    BINANCE_API_KEY: Optional[str] = None
    BINANCE_API_SECRET: Optional[str] = None
    BINANCE_FUTURES_BASE_URL: Optional[str] = None
    BINANCE_TESTNET: Optional[bool] = None
    BINANCE_RECV_WINDOW: Optional[int] = None

    # Upstream calls have no retry, so keep this short
    UPSTREAM_TIMEOUT_SECONDS: float = 10.0

    # Activity feed
    MAX_ACTIVITY_LOGS: int = 100

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

settings = Settings()
