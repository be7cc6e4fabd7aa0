"""
Configuration management for the market data providers.
"""

import logging
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from . import __version__


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="MDP_", env_file=".env", case_sensitive=False, extra="ignore"
    )

    # HTTP settings
    http_timeout: float = Field(default=30.0, description="Request timeout in seconds")
    http_user_agent: str = f"mdproviders/{__version__}"
    http_chunk_size: int = Field(
        default=16 * 4096, description="Download buffer size in bytes"
    )
    read_chunk_size: int = Field(
        default=4096, description="Bytes decoded per step when splitting lines"
    )

    # Retry policy for the Yahoo! Finance option chain requests
    retry_attempts: int = 10
    retry_delay: float = 1.0  # seconds

    # Disk cache
    settings_root: Path = Field(default_factory=lambda: Path.home() / ".mdproviders")
    meff_cache_subdir: str = "MEFFCACHE"

    # Vendor endpoints
    yahoo_base_url: str = "https://ichart.yahoo.com/table.csv"
    yahoo_options_url: str = "https://query.yahooapis.com/v1/public/yql"
    yahoo_options_env: str = "store://datatables.org/alltableswithkeys"
    yahoo_options_months: int = Field(
        default=24, description="Expiration months requested per option chain"
    )
    ecb_base_url: str = (
        "https://www.ecb.europa.eu/stats/policy_and_exchange_rates/"
        "euro_reference_exchange_rates/html"
    )
    meff_base_url: str = "https://www.meff.es/docs/Ficheros/Descarga/dRV"

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @property
    def meff_cache_dir(self) -> Path:
        """Directory holding the downloaded MEFF archives."""
        return Path(self.settings_root).expanduser() / self.meff_cache_subdir


def configure_logging(level: Optional[str] = None) -> None:
    """Configure root logging from settings."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=settings.log_format,
    )


# Global settings instance
settings = Settings()
