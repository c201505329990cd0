"""
Configuration Management Module

This module handles loading, validating, and providing access to client configuration
from environment variables (.env file).

Uses Pydantic Settings for automatic validation and type conversion.

Key Features:
- Loads configuration from .env file (variables prefixed with MTGOX_)
- Validates commission rate and currency code
- Provides an immutable MarketConfig snapshot for the aggregation core
- Handles optional credentials with sensible defaults

Usage:
    from core.config import settings

    # Access configuration values
    print(settings.base_url)
    print(settings.market_config)  # MarketConfig(commission=..., currency='USD')
"""

from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from core.logging import logger


DEFAULT_COMMISSION = Decimal("0.0065")
DEFAULT_CURRENCY = "USD"


# ============================================
# Market Configuration Snapshot
# ============================================

class MarketConfig(BaseModel):
    """
    Immutable snapshot of the settings the aggregation core depends on.

    Every core function that needs the commission rate or the quote currency
    receives one of these explicitly instead of reading global settings.

    Attributes:
        commission: Exchange fee rate as a fraction in [0, 1) (0.0065 = 0.65%)
        currency: Quote currency code in uppercase (e.g., "USD", "EUR")

    Example:
        >>> config = MarketConfig(commission=Decimal("0.0065"), currency="eur")
        >>> config.currency
        'EUR'
    """

    model_config = ConfigDict(frozen=True)

    commission: Decimal = Field(
        default=DEFAULT_COMMISSION,
        ge=0,
        lt=1,
        description="Exchange commission rate as a fraction"
    )

    currency: str = Field(
        default=DEFAULT_CURRENCY,
        min_length=1,
        description="Quote currency code",
        examples=["USD", "EUR", "JPY"]
    )

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Ensure currency is uppercase"""
        return v.strip().upper()


class Settings(BaseSettings):
    """
    Client Settings

    Values are automatically loaded from MTGOX_* environment variables or .env file.

    Attributes:
        base_url: Base URL for the Mt. Gox API
        username: Account name (needed for authenticated commands only)
        password: Account password (needed for authenticated commands only)
        currency: Quote currency for all market requests
        commission: Exchange commission rate used for effective prices
        request_timeout: Timeout for HTTP requests in seconds
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    # ============================================
    # API Configuration
    # ============================================

    base_url: str = Field(
        default="https://mtgox.com",
        description="Mt. Gox API base URL"
    )

    username: str = Field(
        default="",
        description="Account name (optional for public endpoints)"
    )

    password: str = Field(
        default="",
        description="Account password (optional for public endpoints)"
    )

    # ============================================
    # Market Configuration
    # ============================================

    currency: str = Field(
        default=DEFAULT_CURRENCY,
        description="Quote currency code (BTC is always the base asset)"
    )

    commission: Decimal = Field(
        default=DEFAULT_COMMISSION,
        ge=0,
        lt=1,
        description="Exchange commission rate as a fraction (0.0065 = 0.65%)"
    )

    # ============================================
    # Application Configuration
    # ============================================

    request_timeout: int = Field(
        default=10,
        gt=0,
        description="HTTP request timeout in seconds"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )

    model_config = SettingsConfigDict(
        env_prefix="MTGOX_",
        env_file=".env",
        # Ignore extra fields in .env that aren't defined here
        extra="ignore",
        case_sensitive=False
    )

    @field_validator("currency")
    @classmethod
    def validate_currency(cls, v: str) -> str:
        """Ensure currency is uppercase"""
        return v.strip().upper()

    # ============================================
    # Properties
    # ============================================

    @property
    def market_config(self) -> MarketConfig:
        """
        Snapshot of the market settings for the aggregation core.

        Returns:
            Frozen MarketConfig with the current commission and currency
        """
        return MarketConfig(commission=self.commission, currency=self.currency)

    @property
    def has_credentials(self) -> bool:
        """True if both username and password are configured"""
        return bool(self.username and self.password)


# ============================================
# Global Settings Instance
# ============================================

settings = Settings()


# ============================================
# Configuration Validation
# ============================================

def validate_configuration(config: Settings = None) -> None:
    """
    Validate critical configuration settings before talking to the exchange.

    Args:
        config: Settings to validate (defaults to the global settings)

    Raises:
        ValueError: If configuration is invalid
    """
    config = config or settings

    if not (config.currency.isalpha() and len(config.currency) == 3):
        raise ValueError(
            f"Invalid currency: '{config.currency}'. "
            f"Must be a three-letter code such as USD or EUR"
        )

    if not (0 <= config.commission < 1):
        raise ValueError(f"Invalid commission: {config.commission}. Must be in [0, 1)")

    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.log_level.upper() not in valid_log_levels:
        raise ValueError(
            f"Invalid LOG_LEVEL: '{config.log_level}'. "
            f"Must be one of: {', '.join(valid_log_levels)}"
        )

    logger.info("Configuration validated successfully")
    logger.info(f"Mt. Gox API: {config.base_url}")
    logger.info(f"Market: BTC{config.currency} (commission {config.commission})")
    logger.info(f"Credentials: {'configured' if config.has_credentials else 'not configured'}")
    logger.info(f"Log level: {config.log_level.upper()}")
