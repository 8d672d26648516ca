"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite+aiosqlite:///./pocket_ledger.db"
    database_echo: bool = False

    # Service
    service_name: str = "pocket-ledger"
    log_level: str = "INFO"

    # Defaults seeded into AppSettings and new cards
    default_yield_rate: float = 6.5  # monthly %
    balance_yield_enabled: bool = False
    default_closing_day: int = 25
    default_due_day: int = 5


settings = Settings()
