"""Configuration settings for the Khata computation core."""

from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Flat settings read from the environment or a local .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Document store
    store_url: str = Field(
        default="http://localhost:8080", validation_alias="KHATA_STORE_URL"
    )
    # Only the HTTP store adapter needs a key; in-memory stores run without one.
    store_api_key: SecretStr | None = Field(
        default=None, validation_alias="KHATA_STORE_API_KEY"
    )
    store_timeout: float = Field(default=30.0, validation_alias="KHATA_STORE_TIMEOUT")
    store_max_retries: int = Field(default=3, validation_alias="KHATA_STORE_MAX_RETRIES")

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", validation_alias="KHATA_LOG_LEVEL"
    )
    log_format: Literal["json", "console"] = Field(
        default="console", validation_alias="KHATA_LOG_FORMAT"
    )

    # Payroll statutory rates (fractions, not percentages)
    housing_allowance_rate: Decimal = Field(
        default=Decimal("0.40"), validation_alias="KHATA_HOUSING_ALLOWANCE_RATE"
    )
    dearness_allowance_rate: Decimal = Field(
        default=Decimal("0.10"), validation_alias="KHATA_DEARNESS_ALLOWANCE_RATE"
    )
    provident_fund_rate: Decimal = Field(
        default=Decimal("0.12"), validation_alias="KHATA_PROVIDENT_FUND_RATE"
    )
    state_insurance_rate: Decimal = Field(
        default=Decimal("0.0175"), validation_alias="KHATA_STATE_INSURANCE_RATE"
    )
    withholding_rate: Decimal = Field(
        default=Decimal("0.10"), validation_alias="KHATA_WITHHOLDING_RATE"
    )
    withholding_threshold: Decimal = Field(
        default=Decimal("25000"), validation_alias="KHATA_WITHHOLDING_THRESHOLD"
    )

    # Reconciliation
    match_amount_tolerance: Decimal = Field(
        default=Decimal("0.01"), validation_alias="KHATA_MATCH_AMOUNT_TOLERANCE"
    )
    match_window_days: int = Field(default=7, validation_alias="KHATA_MATCH_WINDOW_DAYS")

    # Numbering (month scopes follow the business's local calendar)
    timezone: str = Field(default="Asia/Kolkata", validation_alias="KHATA_TIMEZONE")
    numbering_max_attempts: int = Field(
        default=5, validation_alias="KHATA_NUMBERING_MAX_ATTEMPTS"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
