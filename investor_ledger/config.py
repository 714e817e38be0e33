"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./investor_ledger.db"

    # Service
    service_name: str = "investor-ledger"
    log_level: str = "INFO"

    # Ledger
    display_date_format: str = "%d-%b-%Y"  # 01-Jan-2023
    min_supported_year: int = 1900
    max_supported_year: int = 2200
    default_company_rate: float = 10.0  # Percent per annum

    # Write a transaction_revision row for every edit and delete
    record_revisions: bool = False


settings = Settings()
