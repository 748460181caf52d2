"""
PURPOSE: Configuration settings for the strategy core.

This module uses Pydantic Settings to manage configuration from environment
variables and .env files. Only ambient and compiler-tuning values live here;
the canonical defaults are constants (see config/constants.py) so that a
replayed event log never depends on the environment it runs in.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    PURPOSE: Central configuration class for the strategy core.

    Settings are loaded from environment variables and .env file.
    """

    # System Settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    # Compiler tuning
    # Bars scanned for a swing high/low when a structure stop has no explicit level
    STRUCTURE_LOOKBACK_BARS: int = 10
    # Bars averaged for the volume-confirmed breakout check
    VOLUME_AVERAGE_BARS: int = 20
    VOLUME_CONFIRMATION_MULTIPLIER: float = 1.5
    # Recent bars that may count as an EMA touch
    EMA_TOUCH_LOOKBACK_BARS: int = 5
    # ATR stand-in (in ticks) when the context carries no ATR value
    ATR_FALLBACK_TICKS: int = 10

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
